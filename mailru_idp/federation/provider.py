"""
Mail.ru identity provider.

OAuth login through Mail.ru (https://oauth.mail.ru). The generic
authorization code exchange is done by the broker's OIDC client using the
endpoints and default scope exposed here. This class covers the provider
specific part:

- federated_identity(): access token -> Identity after the code exchange
- validate_subject_token() / exchange_external_token(): external token
  exchange, where a token issued elsewhere is resolved against the profile
  endpoint
- extract_identity_from_profile(): profile -> Identity
"""

import logging
from typing import Optional

import httpx

from mailru_idp.config import Settings
from mailru_idp.federation.config import (
    PROFILE_URL,
    ProviderConfig,
    provider_config_from_settings,
)
from mailru_idp.federation.errors import FederationIOError, IdentityBrokerError
from mailru_idp.federation.fetcher import DEFAULT_TIMEOUT_SECONDS, fetch_profile
from mailru_idp.federation.identity import Identity, RawProfile
from mailru_idp.federation.normalizer import normalize

logger = logging.getLogger(__name__)


class MailRuIdentityProvider:
    """
    Mail.ru provider instance bound to one ProviderConfig.

    Holds no per-request state; one instance can serve concurrent logins.
    """

    supports_external_exchange = True

    def __init__(
        self,
        config: ProviderConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        log_sensitive: bool = False,
    ):
        """
        Args:
            config: Provider configuration
            http_client: Client for profile requests; one is created per
                         request when omitted
            timeout: Profile request timeout in seconds
            log_sensitive: Log raw tokens and profiles at DEBUG level
        """
        self._config = config
        self._http_client = http_client
        self._timeout = timeout
        self._log_sensitive = log_sensitive

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "MailRuIdentityProvider":
        return cls(
            provider_config_from_settings(settings),
            http_client=http_client,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            log_sensitive=settings.LOG_SENSITIVE_VALUES,
        )

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def default_scopes(self) -> str:
        return self._config.default_scope

    def get_profile_endpoint_for_validation(self) -> str:
        """Endpoint the broker uses to validate external subject tokens."""
        return PROFILE_URL

    # =========================================================================
    # Profile
    # =========================================================================

    async def _fetch(self, token: str) -> RawProfile:
        return await fetch_profile(
            token,
            url=PROFILE_URL,
            client=self._http_client,
            timeout=self._timeout,
            provider_name=self._config.display_name,
            log_sensitive=self._log_sensitive,
        )

    def extract_identity_from_profile(self, profile: RawProfile) -> Identity:
        """
        Build the Identity for a fetched profile.

        Raises:
            ProfileError: If the profile is not acceptable (see normalize)
        """
        return normalize(profile, self._config, provider=self)

    # =========================================================================
    # Federated Login
    # =========================================================================

    async def federated_identity(self, access_token: str) -> Identity:
        """
        Resolve an access token from the authorization code flow.

        Raises:
            IdentityBrokerError: If the profile could not be obtained
                                 (wraps FederationIOError)
            ProfileError: If the profile is not acceptable
        """
        try:
            profile = await self._fetch(access_token)
        except FederationIOError as e:
            raise IdentityBrokerError(e.message, cause=e) from e

        identity = self.extract_identity_from_profile(profile)

        logger.info(
            f"Federated {self._config.display_name} login for {identity.username}",
            extra={"alias": self._config.alias},
        )
        return identity

    # =========================================================================
    # External Token Exchange
    # =========================================================================

    async def validate_subject_token(self, subject_token: str) -> RawProfile:
        """
        Resolve an externally issued token against the profile endpoint.

        Signature and expiry checks belong to the broker; a profile coming
        back is the proof that Mail.ru accepts the token.

        Raises:
            FederationIOError: If the provider refused the token or could
                               not be reached
        """
        return await self._fetch(subject_token)

    async def exchange_external_token(self, subject_token: str) -> Identity:
        """
        Validate a subject token and build its Identity.

        Raises:
            FederationIOError: If the token could not be validated
            ProfileError: If the profile is not acceptable
        """
        profile = await self.validate_subject_token(subject_token)
        identity = self.extract_identity_from_profile(profile)

        logger.info(
            f"Exchanged external {self._config.display_name} token for {identity.username}",
            extra={"alias": self._config.alias},
        )
        return identity
