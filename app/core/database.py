from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from app.config import Settings

logger = logging.getLogger(__name__)

MEMORY_DATABASE_URL = "sqlite://"


def import_models() -> None:
    """Register every table on SQLModel.metadata."""
    from app.models import brand, enrichment, monitor, scout  # noqa: F401


def build_engine(
    database_url: str | None,
    *,
    config: Settings,
    auto_create_schema: bool = False,
) -> Engine:
    """Create the row-store engine, falling back to in-process SQLite when unset."""
    resolved_url = database_url or MEMORY_DATABASE_URL
    parsed_url = make_url(resolved_url)
    sync_url, connect_args, drivername = _coerce_sync_database_url(parsed_url)
    is_sqlite = drivername.startswith("sqlite")
    engine_kwargs: dict[str, Any] = {
        "echo": config.debug and not is_sqlite,
        "connect_args": connect_args,
        "pool_pre_ping": not is_sqlite,
    }
    if is_sqlite and parsed_url.database in (None, "", ":memory:"):
        engine_kwargs["poolclass"] = StaticPool
    elif not is_sqlite:
        pool_min = max(config.db_pool_min_size, 1)
        pool_max = max(config.db_pool_max_size, pool_min)
        engine_kwargs["pool_size"] = pool_min
        engine_kwargs["max_overflow"] = max(pool_max - pool_min, 0)
        engine_kwargs["pool_recycle"] = 300

    try:
        engine = create_engine(sync_url, **engine_kwargs)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    if auto_create_schema or not database_url:
        import_models()
        SQLModel.metadata.create_all(engine)

    backend = "memory" if not database_url else resolve_backend_tag(parsed_url, drivername)
    logger.info("database.initialized", extra={"backend": backend})
    return engine


def check_database_health(engine: Engine | None) -> bool:
    """Check if database is accessible."""
    if engine is None:
        return True  # No database configured, consider healthy

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def _coerce_sync_database_url(url: URL) -> tuple[str, dict[str, Any], str]:
    """Convert async connection strings into sync SQLAlchemy URLs."""
    drivername = url.drivername
    connect_args: dict[str, Any] = {}
    if drivername.endswith("+asyncpg"):
        drivername = drivername.replace("+asyncpg", "+psycopg2")
    elif drivername.endswith("+psycopg"):
        drivername = drivername.replace("+psycopg", "+psycopg2")
    elif drivername.endswith("+aiosqlite"):
        drivername = "sqlite"
    sync_url = url.set(drivername=drivername)
    query = dict(sync_url.query) if sync_url.query else {}
    removed_ssl = False
    if "ssl" in query:
        query.pop("ssl", None)
        removed_ssl = True
    sync_url = sync_url.set(query=query)

    host = (url.host or "").lower()
    if drivername.startswith("postgresql"):
        query = dict(sync_url.query) if sync_url.query else {}
        if "sslmode" not in query and (removed_ssl or "neon.tech" in host):
            connect_args["sslmode"] = "require"
    if drivername.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    return sync_url.render_as_string(hide_password=False), connect_args, drivername


def resolve_backend_tag(url: URL, drivername: str) -> str:
    host = (url.host or "").lower()
    if "neon.tech" in host:
        return "neon"
    if drivername.startswith("sqlite"):
        return "sqlite"
    return "postgres"
