from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "DMG Intelligence Suite"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database
    database_url: str | None = None
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_auto_create_schema: bool = True

    # Providers
    firecrawl_api_key: str | None = None
    firecrawl_base_url: str = "https://api.firecrawl.dev/v1"
    serper_api_key: str | None = None
    exa_api_key: str | None = None
    openai_api_key: str | None = None
    provider_timeout_seconds: float = 30.0
    search_results_per_provider: int = 20

    # Firecrawl token bucket
    firecrawl_rate_per_second: float = 2.0
    firecrawl_burst: int = 5
    firecrawl_rate_limit_timeout: float = 30.0

    # Enrichment
    enrichment_cache_days: int = 7
    batch_max_rows: int = 500
    batch_max_workers: int = 4
    batch_row_delay_seconds: float = 0.5

    # Monitors
    summary_model: str = "gpt-4o-mini"
    summary_temperature: float = 0.2
    monitor_default_interval_seconds: int = 86400

    # Security
    cors_origins: list[str] = []  # Empty by default for security

    # Sentry
    sentry_dsn: str | None = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Metrics
    metrics_backend: str = "stdout"
    metrics_namespace: str = "dmg"
    metrics_disable: bool = False
    metrics_sample_rate: float = 1.0
    metrics_statsd_host: str = "127.0.0.1"
    metrics_statsd_port: int = 8125

    @property
    def search_providers_configured(self) -> list[str]:
        """Return the search providers that have credentials."""
        configured = []
        if self.serper_api_key:
            configured.append("serper")
        if self.exa_api_key:
            configured.append("exa")
        return configured

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
