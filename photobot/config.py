"""
Application Configuration - Pydantic Settings for type-safe config.

NO DICTIONARIES - All configuration is strongly typed.
FAIL FAST - Critical config is validated at startup.
"""

import sys
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Telegram - NO DEFAULTS for production safety
    bot_token: str = ""
    admin_id: int = 0  # Single operator allowed to use the admin console
    channel_id: str = ""  # Relay/archive channel for original photos

    # Database Configuration
    database_url: str = ""
    database_pool_size: int = 10
    database_max_overflow: int = 5
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600
    run_migrations: bool = True

    # Credit economy
    initial_credits: int = 50
    referral_bonus: int = 30
    daily_limit: int = 50
    referral_prefix: str = "ref_"

    # Remote services
    file_host_url: str = "https://catbox.moe/user/api.php"
    enhance_api_url: str = "https://romek-xd-api.vercel.app/imagecreator/remini"
    http_timeout_seconds: float = 60.0

    # Daily reset
    reset_timezone: str = "UTC"
    reset_hour: int = 0
    reset_minute: int = 0
    reset_check_interval_seconds: int = 60

    # Interaction state
    pending_action_ttl_seconds: int = 300  # Admin prompt expiry
    result_link_ttl_seconds: int = 86400  # Download/Get Link button lifetime

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability - Metrics
    metrics_enabled: bool = True
    metrics_port: int = 9090

    service_name: str = "photobot"
    service_version: str = "0.1.0"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate critical configuration at startup.

        The bot MUST NOT start if critical config is missing.
        """
        errors: list[str] = []

        if not self.bot_token:
            errors.append("BOT_TOKEN is required but empty or missing")

        if self.admin_id <= 0:
            errors.append("ADMIN_ID is required and must be a positive Telegram user id")

        if not self.channel_id:
            errors.append("CHANNEL_ID is required but empty or missing")

        if not self.database_url:
            errors.append("DATABASE_URL is required but empty or missing")
        elif not self.database_url.startswith(("postgresql", "postgres")):
            errors.append(
                f"DATABASE_URL must be a PostgreSQL URL, got: {self.database_url[:20]}..."
            )

        if not 0 <= self.reset_hour <= 23 or not 0 <= self.reset_minute <= 59:
            errors.append(
                f"RESET_HOUR/RESET_MINUTE out of range: {self.reset_hour}:{self.reset_minute}"
            )

        try:
            ZoneInfo(self.reset_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"RESET_TIMEZONE is not a known timezone: {self.reset_timezone}")

        if self.daily_limit <= 0 or self.initial_credits < 0 or self.referral_bonus < 0:
            errors.append("DAILY_LIMIT must be positive; INITIAL_CREDITS and REFERRAL_BONUS >= 0")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "CRITICAL CONFIGURATION ERROR - BOT CANNOT START",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self

    @property
    def async_database_url(self) -> str:
        """Database URL with the asyncpg driver (Heroku/Railway style URLs are normalised)."""
        url = self.database_url
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://") :]
        if url.startswith("postgresql://"):
            url = "postgresql+asyncpg://" + url[len("postgresql://") :]
        return url

    @property
    def reset_zone(self) -> ZoneInfo:
        """Timezone in which the daily usage boundary is evaluated."""
        return ZoneInfo(self.reset_timezone)


# Global settings instance - validates at import time
settings = Settings()


def get_settings() -> Settings:
    """Get application settings instance."""
    return settings
