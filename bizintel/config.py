"""
Application configuration using pydantic-settings.
All config is validated at startup - fail fast if anything is malformed.
"""
import tempfile
from functools import lru_cache

from pydantic_settings import BaseSettings

# Clay "pull in data from a webhook" source shared by search and enrichment
DEFAULT_CLAY_WEBHOOK_URL = (
    "https://api.clay.com/v3/sources/webhook/"
    "pull-in-data-from-a-webhook-717b978b-98aa-4d91-8be2-8cd73bcf6222"
)


class Settings(BaseSettings):
    # Application
    app_env: str = "development"
    app_base_url: str = "http://localhost:8000"
    log_level: str = "INFO"
    allowed_origins: str = ""  # Comma-separated CORS origins (localhost always included)

    # Clay outbound webhooks
    clay_search_webhook_url: str = DEFAULT_CLAY_WEBHOOK_URL
    clay_enrichment_webhook_url: str = DEFAULT_CLAY_WEBHOOK_URL
    clay_timeout_seconds: float = 10.0
    app_source_tag: str = "business-intelligence-visuals"

    # Shared store
    storage_backend: str = "file"  # file, memory, database
    storage_dir: str = tempfile.gettempdir()
    lock_stale_seconds: float = 5.0
    lock_max_retries: int = 20
    lock_retry_interval_seconds: float = 0.1

    # Database (storage_backend=database)
    database_url: str = "sqlite+aiosqlite:///./bizintel.db"

    # Redis (rate limiting + webhook redelivery dedup)
    redis_url: str = "redis://localhost:6379/0"

    # Webhook hardening - all off unless configured
    rate_limit_enabled: bool = False
    rate_limit_per_minute: int = 120
    webhook_signing_key: str = ""
    webhook_dedup_window_seconds: int = 0  # 0 disables redelivery dedup

    # Reader / SSE
    stream_poll_interval_seconds: float = 1.0
    stream_keepalive_seconds: float = 30.0

    # Sentry
    sentry_dsn: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def redis_required(self) -> bool:
        return self.rate_limit_enabled or self.webhook_dedup_window_seconds > 0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
