# app/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_env: Literal["dev", "staging", "prod"] = "dev"
    log_level: str = "INFO"
    default_language: Literal["ru", "uz"] = "ru"  # used before the user picks a language

    # Telegram
    telegram_bot_token: str | None = None  # Bot token from @BotFather
    telegram_mode: Literal["polling", "webhook"] = "polling"
    telegram_webhook_secret: str | None = None  # X-Telegram-Bot-Api-Secret-Token
    telegram_webhook_url: str | None = None  # Registered with setWebhook on startup when set
    telegram_poll_timeout: int = 30  # getUpdates long-poll seconds

    # Identity provider (Supabase Auth admin API)
    supabase_url: str | None = None  # e.g., https://xyz.supabase.co
    supabase_service_role_key: str | None = None

    # Object storage (S3-compatible, e.g. Supabase Storage S3 endpoint)
    storage_endpoint_url: str | None = None  # e.g., https://xyz.supabase.co/storage/v1/s3
    storage_access_key: str | None = None
    storage_secret_key: str | None = None
    storage_region: str = "auto"
    storage_bucket: str = "avatars"
    storage_public_url: str | None = None  # Public URL prefix; derived from supabase_url when unset
    storage_force_path_style: bool = True

    # Record store (Postgres)
    database_url: str | None = None
    pg_pool_min: int = 1
    pg_pool_max: int = 10
    profiles_table: str = "job_seekers"

    # Monitoring & Metrics
    enable_metrics: bool = True
    metrics_token: str | None = None  # Bearer token for /metrics (open when unset)

    @property
    def is_production(self) -> bool:
        return self.app_env == "prod"

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token)

    @property
    def identity_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)

    @property
    def storage_enabled(self) -> bool:
        """Check if S3-compatible storage is configured"""
        return bool(
            self.storage_endpoint_url
            and self.storage_access_key
            and self.storage_secret_key
            and self.storage_bucket
        )

    @property
    def effective_storage_public_url(self) -> str | None:
        """Public URL prefix for stored objects (``<prefix>/<bucket>/<name>``)"""
        if self.storage_public_url:
            return self.storage_public_url.rstrip("/")
        if self.supabase_url:
            return f"{self.supabase_url.rstrip('/')}/storage/v1/object/public"
        return None

    def validate_required_for_production(self) -> list[str]:
        """Validate that required settings exist for production"""
        if not self.is_production:
            return []

        required_fields = [
            ("telegram_bot_token", self.telegram_bot_token),
            ("supabase_url", self.supabase_url),
            ("supabase_service_role_key", self.supabase_service_role_key),
            ("database_url", self.database_url),
        ]
        if self.telegram_mode == "webhook":
            required_fields.append(("telegram_webhook_secret", self.telegram_webhook_secret))

        return [name for name, value in required_fields if not value]


def warn_on_risky_config(s: "Settings") -> list[str]:
    warnings: list[str] = []

    if not s.telegram_enabled:
        warnings.append("telegram_bot_token is not set (the bot will not receive messages).")

    if s.telegram_mode == "webhook" and not s.telegram_webhook_secret:
        warnings.append("telegram_mode=webhook but telegram_webhook_secret is not set (webhook is unauthenticated).")

    if not s.identity_enabled:
        warnings.append("supabase_url/supabase_service_role_key missing (accounts cannot be created).")

    if not s.database_url:
        warnings.append("database_url is not set (profiles will not be listed).")

    if not s.storage_enabled:
        warnings.append("Object storage is not configured (profile pictures will stay in Telegram only).")
    elif not s.effective_storage_public_url:
        warnings.append("storage is enabled but no public URL prefix can be derived (image links will be broken).")

    if s.enable_metrics and not s.metrics_token:
        warnings.append("enable_metrics=True but metrics_token is not set (/metrics is public).")

    return warnings


def validate_or_warn(s: "Settings") -> None:
    """
    In prod: enforce required settings (hard fail).
    In non-prod: warn only.
    """
    missing = s.validate_required_for_production()
    if missing:
        raise RuntimeError(f"Missing required settings for production: {', '.join(missing)}")

    # Logging is not configured yet at import time
    for msg in warn_on_risky_config(s):
        print(f"[WARN][config] {msg}")


settings = Settings()
validate_or_warn(settings)
