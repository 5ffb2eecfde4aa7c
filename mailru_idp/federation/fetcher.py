"""
User profile fetching.

Resolves an access token (or an externally issued subject token) to the
Mail.ru user profile. Mail.ru expects the token as the access_token query
parameter, not in an Authorization header.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from mailru_idp.federation.config import PROFILE_URL, PROVIDER_NAME
from mailru_idp.federation.errors import FederationIOError
from mailru_idp.federation.identity import RawProfile

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


async def fetch_profile(
    token: str,
    *,
    url: str = PROFILE_URL,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    provider_name: str = PROVIDER_NAME,
    log_sensitive: bool = False,
) -> RawProfile:
    """
    Fetch the user profile for a token.

    Exactly one request is made; failures are never retried here.

    Args:
        token: Access token or subject token
        url: Profile endpoint
        client: Shared client to use (left open). A client is created and
                closed for this call when omitted.
        timeout: Request timeout in seconds
        provider_name: Provider label for error messages
        log_sensitive: Log the raw token and profile instead of redacted forms

    Returns:
        Parsed profile JSON object

    Raises:
        ValueError: If token is empty
        FederationIOError: If the request fails, the provider answers with an
                           error, or the body is not a JSON object
    """
    if not token or not token.strip():
        raise ValueError("token must be a non-empty string")

    logger.debug(
        f"Requesting {provider_name} user profile",
        extra={
            "subject_token": token if log_sensitive else redact_token(token),
            "user_info_url": url,
        },
    )

    own = client or httpx.AsyncClient(timeout=timeout)
    try:
        response = await own.get(url, params={"access_token": token}, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise _io_error(provider_name, e, status_code=e.response.status_code) from e
    except httpx.HTTPError as e:
        raise _io_error(provider_name, e) from e
    finally:
        if client is None:
            await own.aclose()

    try:
        profile = response.json()
    except ValueError as e:
        raise _io_error(provider_name, e, status_code=response.status_code) from e

    if not isinstance(profile, dict):
        raise FederationIOError(
            f"Could not obtain user profile from {provider_name}: "
            f"expected a JSON object, got {type(profile).__name__}",
            provider=provider_name,
            status_code=response.status_code,
        )

    if "error" in profile and "email" not in profile:
        description = profile.get("error_description") or profile.get("error")
        raise FederationIOError(
            f"Could not obtain user profile from {provider_name}: {description}",
            provider=provider_name,
            status_code=response.status_code,
            # an error document means the token was refused
            token_rejected=True,
        )

    logger.debug(
        f"Received {provider_name} user profile",
        extra={"profile": profile if log_sensitive else redact_profile(profile)},
    )

    return profile


def _io_error(
    provider_name: str,
    cause: Exception,
    status_code: Optional[int] = None,
) -> FederationIOError:
    message = f"Could not obtain user profile from {provider_name}: {_describe(cause)}"
    logger.warning(
        message,
        extra={"status_code": status_code, "exception_type": type(cause).__name__},
    )
    return FederationIOError(
        message,
        provider=provider_name,
        cause=cause,
        status_code=status_code,
    )


def _describe(cause: Exception) -> str:
    # HTTPStatusError text embeds the request URL, which carries the token
    if isinstance(cause, httpx.HTTPStatusError):
        return f"HTTP {cause.response.status_code} {cause.response.reason_phrase}".strip()
    return str(cause) or type(cause).__name__


# =============================================================================
# Redaction
# =============================================================================

def redact_token(token: str) -> str:
    """Keep the first four characters and the length of a token."""
    return f"{token[:4]}...(len={len(token)})"


def redact_profile(profile: Dict[str, Any]) -> Dict[str, str]:
    """Replace every profile value with its JSON type name."""
    return {key: type(value).__name__ for key, value in profile.items()}
