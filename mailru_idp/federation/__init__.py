"""
Federation Package

Mail.ru identity federation: resolves Mail.ru access tokens to user profiles
and turns those into broker identities, enforcing the hosted domain policy.

Modules:
- config: Fixed Mail.ru endpoints and the immutable ProviderConfig
- fetcher: User profile request
- normalizer: Profile validation, domain policy and Identity construction
- provider: MailRuIdentityProvider (federated login and token exchange)
- routes: HTTP endpoints exposing the provider to the broker
- errors: Error taxonomy

The login flow:
1. Broker runs the authorization code flow against AUTH_URL / TOKEN_URL
2. Broker passes the access token to federated_identity()
3. Profile is fetched from PROFILE_URL with the token as a query parameter
4. Email and domain are validated, Identity is returned
"""

from .config import ProviderConfig, build_provider_config
from .errors import (
    DomainNotAllowedError,
    FederationError,
    FederationIOError,
    IdentityBrokerError,
    InvalidEmailError,
    MissingEmailError,
    ProfileError,
)
from .identity import Identity, RawProfile
from .normalizer import normalize
from .provider import MailRuIdentityProvider

__all__ = [
    "ProviderConfig",
    "build_provider_config",
    "Identity",
    "RawProfile",
    "normalize",
    "MailRuIdentityProvider",
    "FederationError",
    "FederationIOError",
    "IdentityBrokerError",
    "ProfileError",
    "MissingEmailError",
    "InvalidEmailError",
    "DomainNotAllowedError",
]
