"""Application settings and configuration.

This module defines all configuration options for the Nekonymous relay bot.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Nekonymous", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Application-wide secret mixed into every ticket derivation
    app_secure_key: str = Field(alias="APP_SECURE_KEY")

    # Telegram Bot API
    telegram_bot_token: str = Field(alias="SECRET_TELEGRAM_API_TOKEN")
    telegram_api_base_url: str = Field(
        default="https://api.telegram.org",
        alias="TELEGRAM_API_BASE_URL",
    )
    telegram_http_timeout_seconds: float = Field(
        default=10.0,
        alias="TELEGRAM_HTTP_TIMEOUT_SECONDS",
    )
    telegram_webhook_secret: str | None = Field(
        default=None,
        alias="TELEGRAM_WEBHOOK_SECRET",
    )
    bot_name: str = Field(default="nekonymous_bot", alias="BOT_NAME")
    default_locale: str = Field(default="en", alias="DEFAULT_LOCALE")

    # Storage
    database_url: str = Field(default="sqlite:///./nekonymous.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    store_retry_backoff_seconds: float = Field(
        default=0.2,
        alias="STORE_RETRY_BACKOFF_SECONDS",
    )

    # Conversation policy
    rate_limit_seconds: float = Field(default=3.0, alias="RATE_LIMIT_SECONDS")
    conversation_ttl_seconds: int = Field(
        default=60 * 60 * 24 * 30,
        alias="CONVERSATION_TTL_SECONDS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def telegram_api_url(self) -> str:
        """Return the Bot API root for the configured token.

        Returns:
            URL prefix that method names are appended to
        """
        return f"{self.telegram_api_base_url.rstrip('/')}/bot{self.telegram_bot_token}/"

    def share_link(self, user_uuid: str) -> str:
        """Return the deep link strangers open to start a conversation."""
        return f"https://t.me/{self.bot_name}?start={user_uuid}"


settings = Settings()  # type: ignore[call-arg]
