"""
Identity normalization.

Turns a raw Mail.ru profile into an Identity:

1. read and validate the email address
2. split off the domain and check it against the hosted domain list
3. copy names and keep the raw profile for attribute mappers

Normalization is all-or-nothing: either a complete Identity is returned or
one ProfileError subclass is raised.
"""

import copy
import logging
import re
from typing import Any, List, Optional, Union

from mailru_idp.federation.config import ProviderConfig, WILDCARD_DOMAIN
from mailru_idp.federation.errors import (
    DomainNotAllowedError,
    InvalidEmailError,
    MissingEmailError,
)
from mailru_idp.federation.identity import Identity, RawProfile

logger = logging.getLogger(__name__)

_PATH_TOKEN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


# =============================================================================
# JSON Property Helpers
# =============================================================================

def get_json_property(profile: RawProfile, name: str) -> Optional[str]:
    """
    Read a scalar profile property as text.

    Missing, null and empty values are None. Numbers and booleans are
    returned as their JSON text. Objects and arrays are None.
    """
    value = profile.get(name)

    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return "true" if value else "false"

    text = str(value)
    return text or None


def get_profile_attribute(
    identity: Identity,
    path: str,
    alias: Optional[str] = None,
) -> Any:
    """
    Look up a value in the stored raw profile.

    Args:
        identity: Identity returned by normalize()
        path: Dotted path with optional list indexes, e.g. "address.city"
              or "phones[0]"
        alias: Provider alias the profile was stored under
               (defaults to the identity's own provider)

    Returns:
        The value at path, or None when any segment is missing
    """
    profile = identity.context_data.get(alias or identity.provider_config.alias)
    if profile is None:
        return None

    current: Any = profile
    for segment in _split_path(path):
        if isinstance(segment, int):
            if not isinstance(current, list) or segment >= len(current):
                return None
        elif not isinstance(current, dict) or segment not in current:
            return None
        current = current[segment]

    return current


def _split_path(path: str) -> List[Union[str, int]]:
    segments: List[Union[str, int]] = []
    for key, index in _PATH_TOKEN.findall(path):
        segments.append(int(index) if index else key)
    return segments


# =============================================================================
# Domain Policy
# =============================================================================

def extract_domain(email: str, provider: str) -> str:
    """
    Return the part of email after the first '@'.

    Raises:
        InvalidEmailError: If there is no '@' or either side of it is empty
    """
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain:
        raise InvalidEmailError(provider, email)
    return domain


def is_domain_allowed(domain: str, config: ProviderConfig) -> bool:
    """Case-insensitive match against the hosted domains, '*' allows all."""
    return any(
        allowed == WILDCARD_DOMAIN or allowed.lower() == domain.lower()
        for allowed in config.allowed_hosted_domains
    )


# =============================================================================
# Normalization
# =============================================================================

def normalize(
    profile: RawProfile,
    config: ProviderConfig,
    provider: Any = None,
) -> Identity:
    """
    Validate a raw profile and build the federated Identity.

    Args:
        profile: JSON object returned by the user profile endpoint
        config: Provider configuration (hosted domains, alias)
        provider: Provider instance to reference from the Identity

    Returns:
        Identity with id == username == email

    Raises:
        MissingEmailError: If the profile has no email or it is blank
        InvalidEmailError: If the email has no domain part
        DomainNotAllowedError: If the email domain is not allowed
    """
    label = config.display_name

    email = (get_json_property(profile, "email") or "").strip()
    if not email:
        logger.info(
            f"{label} profile has no email address",
            extra={"alias": config.alias},
        )
        raise MissingEmailError(label)

    domain = extract_domain(email, label)

    if not is_domain_allowed(domain, config):
        logger.info(
            f"Rejected {label} login from domain {domain}",
            extra={
                "alias": config.alias,
                "allowed_domains": list(config.allowed_hosted_domains),
            },
        )
        raise DomainNotAllowedError(label, domain)

    return Identity(
        id=email,
        email=email,
        username=email,
        first_name=get_json_property(profile, "first_name"),
        last_name=get_json_property(profile, "last_name"),
        provider_config=config,
        provider=provider,
        context_data={config.alias: copy.deepcopy(profile)},
    )
