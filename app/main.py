import logging
import time
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from app.api.dependencies import build_services
from app.api.routes import brand_recon, enrich, health, monitors, scouts
from app.config import settings
from app.observability.metrics import metrics

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            integrations=[
                FastApiIntegration(),
                LoggingIntegration(level=logging.INFO),
            ],
            traces_sample_rate=0.1,
            environment=settings.environment,
        )
        logger.info("Sentry initialized")

    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(settings)
    logger.info(
        "Application startup complete",
        extra={
            "firecrawl": app.state.services.gateway is not None,
            "search_providers": app.state.services.search.configured,
        },
    )

    yield

    # Shutdown
    logger.info("Shutting down application")
    app.state.services.close()
    app.state.services = None


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Company enrichment, brand recon, search scouts and website monitors.",
    lifespan=lifespan,
    debug=settings.debug,
)

if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests."""
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "http.request",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
        },
    )
    metrics.timing("http.latency_ms", elapsed_ms, tags={"method": request.method})
    return response


app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(enrich.router, prefix="/api", tags=["enrichment"])
app.include_router(brand_recon.router, prefix="/api", tags=["brand-recon"])
app.include_router(scouts.router, prefix="/api", tags=["scouts"])
app.include_router(monitors.router, prefix="/api", tags=["monitors"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.environment,
    }
