"""Service wiring shared by the routers.

Services are built once per application (inside the lifespan, or lazily on the
first request when the lifespan did not run) and stored on ``app.state``.
Handlers receive them through ``Depends`` so tests can override them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.engine import Engine

from app.config import Settings, settings
from app.core.database import build_engine
from app.services.batch import BatchCoordinator
from app.services.brand_recon import BrandReconService
from app.services.enrichment import EnrichmentService
from app.services.errors import ProviderConfigurationError
from app.services.monitors import MonitorService
from app.services.providers.gateway import (
    ProviderGateway,
    SearchGateway,
    build_provider_gateway,
    build_search_gateway,
)
from app.services.repositories import Repositories
from app.services.scouts import ScoutService
from app.services.summarizer import ChangeSummarizer, OpenAIChangeSummarizer

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    repositories: Repositories
    search: SearchGateway
    gateway: ProviderGateway | None
    summarizer: ChangeSummarizer | None
    enrichment: EnrichmentService
    batch: BatchCoordinator
    brand: BrandReconService
    scouts: ScoutService
    monitors: MonitorService

    def close(self) -> None:
        if self.gateway is not None:
            self.gateway.close()
        else:
            self.search.close()
        close_summarizer = getattr(self.summarizer, "close", None)
        if callable(close_summarizer):
            close_summarizer()
        self.repositories.dispose()


def build_services(
    config: Settings,
    *,
    engine: Engine | None = None,
    search: SearchGateway | None = None,
    gateway: ProviderGateway | None = None,
    summarizer: ChangeSummarizer | None = None,
) -> ServiceContainer:
    """Assemble repositories, provider clients and services from settings."""
    if engine is None:
        engine = build_engine(
            config.database_url,
            config=config,
            auto_create_schema=config.db_auto_create_schema,
        )
    repositories = Repositories(engine)
    if gateway is not None:
        search = gateway.search_gateway
    search = search or build_search_gateway(config)
    if gateway is None:
        try:
            gateway = build_provider_gateway(config, search=search)
        except ProviderConfigurationError as exc:
            logger.warning("provider.firecrawl.unconfigured", extra={"error": str(exc)})
    if summarizer is None:
        summarizer = OpenAIChangeSummarizer.from_settings(config)

    enrichment = EnrichmentService(
        gateway=gateway,
        records=repositories.enrichment,
        usage=repositories.usage,
        cache_days=config.enrichment_cache_days,
    )
    return ServiceContainer(
        repositories=repositories,
        search=search,
        gateway=gateway,
        summarizer=summarizer,
        enrichment=enrichment,
        batch=BatchCoordinator(
            enrichment=enrichment,
            records=repositories.enrichment,
            max_rows=config.batch_max_rows,
        ),
        brand=BrandReconService(
            gateway=gateway,
            extractions=repositories.brand,
            usage=repositories.usage,
        ),
        scouts=ScoutService(search=search, scouts=repositories.scouts),
        monitors=MonitorService(
            gateway=gateway,
            monitors=repositories.monitors,
            summarizer=summarizer,
            default_interval_seconds=config.monitor_default_interval_seconds,
        ),
    )


def get_services(request: Request) -> ServiceContainer:
    services = getattr(request.app.state, "services", None)
    if services is None:
        services = build_services(settings)
        request.app.state.services = services
    return services


def get_enrichment_service(services: ServiceContainer = Depends(get_services)) -> EnrichmentService:
    return services.enrichment


def get_batch_coordinator(services: ServiceContainer = Depends(get_services)) -> BatchCoordinator:
    return services.batch


def get_brand_service(services: ServiceContainer = Depends(get_services)) -> BrandReconService:
    return services.brand


def get_scout_service(services: ServiceContainer = Depends(get_services)) -> ScoutService:
    return services.scouts


def get_monitor_service(services: ServiceContainer = Depends(get_services)) -> MonitorService:
    return services.monitors


def get_engine(services: ServiceContainer = Depends(get_services)) -> Engine:
    return services.repositories.engine
