"""
Configuration module for the Mail.ru federation service.

This module uses Pydantic Settings to load and validate environment variables
for the Mail.ru identity provider instance, the outbound HTTP client and
logging.

Environment variables are loaded from .env file or system environment.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Endpoint URLs are not configurable: the provider is hard-wired to
    oauth.mail.ru. Only the operator-editable parts of the provider
    (alias, hosted domains, display name) live here.
    """

    # =========================================================================
    # Provider Instance
    # =========================================================================

    MAILRU_ALIAS: str = Field(
        default="mailru",
        description="Provider alias, used as the key for stored raw profiles",
        min_length=1,
    )

    MAILRU_DISPLAY_NAME: str = Field(
        default="Mail.ru",
        description="Provider label used in error messages",
        min_length=1,
    )

    # =========================================================================
    # Domain-based Access Control
    # =========================================================================

    MAILRU_HOSTED_DOMAIN: Optional[str] = Field(
        None,
        description="Comma-separated list of allowed email domains, '*' or unset for any domain",
    )

    # =========================================================================
    # Outbound HTTP
    # =========================================================================

    HTTP_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout for the user profile request in seconds",
        ge=1,
        le=120,
    )

    # =========================================================================
    # Logging
    # =========================================================================

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    LOG_SENSITIVE_VALUES: bool = Field(
        default=False,
        description="Log raw tokens and profile bodies at DEBUG level instead of redacted forms",
    )

    # =========================================================================
    # Server
    # =========================================================================

    SERVICE_HOST: str = Field(default="0.0.0.0")

    SERVICE_PORT: int = Field(default=8080, ge=1, le=65535)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("MAILRU_HOSTED_DOMAIN")
    @classmethod
    def validate_hosted_domain(cls, v: Optional[str]) -> Optional[str]:
        """
        Validate the comma-separated hosted domain list.

        Blank values are normalized to None (allow any domain).

        Raises:
            ValueError: If an entry contains spaces or @ symbols
        """
        if v is None or not v.strip():
            return None

        for domain in (d.strip() for d in v.split(",")):
            if " " in domain or "@" in domain:
                raise ValueError(
                    f"Invalid domain format: '{domain}'. "
                    "Domain should not contain spaces or @ symbols"
                )

        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        level = v.upper()
        if level not in allowed_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {allowed_levels}, got: {v}"
            )

        return level


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    Call get_settings.cache_clear() to reload after changing the environment.
    """
    return Settings()
