"""
Data Models Module

This module defines Pydantic models for request/response validation
of the federation HTTP endpoints.

Models are organized by functional area:
- Federation models (token requests, identity and provider responses)
- Health check models
- Error models
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from mailru_idp.federation.identity import Identity

ACCESS_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:access_token"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Federation Models
# ============================================================================

class FederatedLoginRequest(BaseModel):
    """Access token obtained by the broker's authorization code exchange."""
    access_token: str = Field(..., description="Mail.ru access token", min_length=1)

    @field_validator("access_token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Token cannot be empty or only whitespace")
        return v


class TokenExchangeRequest(BaseModel):
    """External token exchange request (RFC 8693 subset)."""
    subject_token: str = Field(..., description="Externally issued Mail.ru token", min_length=1)
    subject_token_type: str = Field(
        default=ACCESS_TOKEN_TYPE,
        description="Token type URN; only access tokens are supported",
    )

    @field_validator("subject_token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Token cannot be empty or only whitespace")
        return v


class IdentityResponse(BaseModel):
    """Federated identity returned to the broker."""
    id: str = Field(..., description="Federated user id")
    email: str = Field(..., description="User email address")
    username: str = Field(..., description="Username (same as email)")
    first_name: Optional[str] = Field(None, description="Given name")
    last_name: Optional[str] = Field(None, description="Family name")
    alias: str = Field(..., description="Provider alias")
    broker_user_id: str = Field(..., description="Alias-qualified user id")
    raw_profile: Dict[str, Any] = Field(default_factory=dict, description="Profile as returned by the provider")

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentityResponse":
        return cls(
            id=identity.id,
            email=identity.email,
            username=identity.username,
            first_name=identity.first_name,
            last_name=identity.last_name,
            alias=identity.provider_config.alias,
            broker_user_id=identity.broker_user_id,
            raw_profile=identity.raw_profile or {},
        )


class ProviderInfoResponse(BaseModel):
    """Provider endpoints and capabilities for the broker's OIDC client."""
    alias: str
    display_name: str
    authorization_url: str
    token_url: str
    user_info_url: str
    default_scope: str
    supports_external_exchange: bool
    profile_endpoint_for_validation: str
    allowed_hosted_domains: List[str]


# ============================================================================
# Health Check Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="Error type or code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp")
