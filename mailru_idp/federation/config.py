"""
Mail.ru provider configuration.

The provider talks to a single external service, so the endpoint URLs and the
default scope are module constants. ProviderConfig exposes them as read-only
computed fields; build_provider_config() is the construction path and drops
whatever endpoint values a generic OIDC configuration carries.
"""

import logging
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field

from mailru_idp.config import Settings

logger = logging.getLogger(__name__)


# Authorization code request
AUTH_URL = "https://oauth.mail.ru/login"

# Authorization code -> access token
TOKEN_URL = "https://oauth.mail.ru/token"

# User profile
PROFILE_URL = "https://oauth.mail.ru/userinfo"

DEFAULT_SCOPE = "userinfo"

PROVIDER_ID = "mailru"
PROVIDER_NAME = "Mail.ru"

WILDCARD_DOMAIN = "*"

_FIXED_ENDPOINTS = {
    "authorization_url": AUTH_URL,
    "token_url": TOKEN_URL,
    "user_info_url": PROFILE_URL,
}


class ProviderConfig(BaseModel):
    """Immutable settings of one Mail.ru provider instance."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    alias: str = Field(..., min_length=1, description="Provider instance name")
    display_name: str = Field(default=PROVIDER_NAME, min_length=1)
    hosted_domain: Optional[str] = Field(
        None,
        description="Comma-separated allowed email domains; unset allows any",
    )

    @computed_field
    @property
    def authorization_url(self) -> str:
        return AUTH_URL

    @computed_field
    @property
    def token_url(self) -> str:
        return TOKEN_URL

    @computed_field
    @property
    def user_info_url(self) -> str:
        return PROFILE_URL

    @computed_field
    @property
    def default_scope(self) -> str:
        return DEFAULT_SCOPE

    @property
    def allowed_hosted_domains(self) -> Tuple[str, ...]:
        """
        Allowed email domains in configured order.

        An unset or blank hosted_domain resolves to the wildcard.
        """
        if not self.hosted_domain:
            return (WILDCARD_DOMAIN,)

        domains = tuple(
            domain.strip()
            for domain in self.hosted_domain.split(",")
            if domain.strip()
        )
        return domains or (WILDCARD_DOMAIN,)


def build_provider_config(
    alias: str = PROVIDER_ID,
    hosted_domain: Optional[str] = None,
    display_name: str = PROVIDER_NAME,
    **overrides: Any,
) -> ProviderConfig:
    """
    Build a fully populated ProviderConfig.

    Endpoint overrides (authorization_url, token_url, user_info_url) are
    accepted so a generic OIDC configuration can be passed through, but the
    Mail.ru constants always win.

    Raises:
        TypeError: If an unknown keyword is passed
    """
    unknown = sorted(set(overrides) - set(_FIXED_ENDPOINTS))
    if unknown:
        raise TypeError(f"Unknown provider config fields: {', '.join(unknown)}")

    ignored = sorted(
        name for name, value in overrides.items()
        if value is not None and value != _FIXED_ENDPOINTS[name]
    )
    if ignored:
        logger.warning(
            f"Ignoring endpoint overrides for {display_name}: {', '.join(ignored)}",
            extra={"alias": alias},
        )

    return ProviderConfig(
        alias=alias,
        display_name=display_name,
        hosted_domain=hosted_domain,
    )


def provider_config_from_settings(settings: Settings) -> ProviderConfig:
    """Build the provider config from operator settings."""
    return build_provider_config(
        alias=settings.MAILRU_ALIAS,
        hosted_domain=settings.MAILRU_HOSTED_DOMAIN,
        display_name=settings.MAILRU_DISPLAY_NAME,
    )
