"""
Federation error taxonomy.

Callers handle the two families differently:

- FederationIOError / IdentityBrokerError: the provider could not be reached
  or its answer could not be read. A retry may help.
- ProfileError and subclasses: the provider answered, but the profile cannot
  be turned into an identity under the current configuration. Retrying will
  not help; the user or the operator has to change something.
"""

from typing import Optional


class FederationError(Exception):
    """Base exception for all federation failures."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.provider = provider


# =============================================================================
# Transport Errors
# =============================================================================

class FederationIOError(FederationError):
    """Raised when the user profile endpoint cannot be reached or parsed."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
        token_rejected: Optional[bool] = None,
    ):
        super().__init__(message, provider)
        self.cause = cause
        self.status_code = status_code
        # True when the provider answered and refused the token
        if token_rejected is None:
            token_rejected = status_code in (400, 401, 403)
        self.token_rejected = token_rejected


class IdentityBrokerError(FederationError):
    """Broker-facing wrapper for a FederationIOError raised during login."""

    def __init__(self, message: str, cause: FederationIOError):
        super().__init__(message, cause.provider)
        self.cause = cause


# =============================================================================
# Profile Errors
# =============================================================================

class ProfileError(FederationError):
    """Raised when a fetched profile cannot be accepted as an identity."""


class MissingEmailError(ProfileError):
    """The profile has no usable email address."""

    def __init__(self, provider: str):
        super().__init__(
            f"Email address is not available in the {provider} profile. "
            f"Grant access to the email address in your {provider} account.",
            provider,
        )


class InvalidEmailError(ProfileError):
    """The profile email has no domain part."""

    def __init__(self, provider: str, email: str):
        super().__init__(
            f"Email address '{email}' returned by {provider} is malformed",
            provider,
        )
        self.email = email


class DomainNotAllowedError(ProfileError):
    """The profile email domain is not on the hosted domain list."""

    def __init__(self, provider: str, domain: str):
        super().__init__(
            f"Email domain '{domain}' is not allowed for {provider} login",
            provider,
        )
        self.domain = domain


__all__ = [
    "FederationError",
    "FederationIOError",
    "IdentityBrokerError",
    "ProfileError",
    "MissingEmailError",
    "InvalidEmailError",
    "DomainNotAllowedError",
]
