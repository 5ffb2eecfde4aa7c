"""
Federation routes.

Endpoints the identity broker calls into:

- GET  /federation/provider        provider endpoints and capabilities
- POST /federation/identity        access token -> identity
- POST /federation/token-exchange  external subject token -> identity

Federation errors are translated into JSON error responses by the handlers
registered in main.create_app().
"""

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, status

from mailru_idp.config import get_settings
from mailru_idp.federation.provider import MailRuIdentityProvider
from mailru_idp.models import (
    ACCESS_TOKEN_TYPE,
    FederatedLoginRequest,
    IdentityResponse,
    ProviderInfoResponse,
    TokenExchangeRequest,
)


federation_router = APIRouter(
    prefix="/federation",
    tags=["federation"],
)


@lru_cache()
def get_provider() -> MailRuIdentityProvider:
    """
    Provider singleton built from settings.

    Overridden in tests through app.dependency_overrides.
    """
    return MailRuIdentityProvider.from_settings(get_settings())


@federation_router.get("/provider", response_model=ProviderInfoResponse)
async def provider_info(
    provider: MailRuIdentityProvider = Depends(get_provider),
) -> ProviderInfoResponse:
    """Endpoints and default scope for the broker's authorization code flow."""
    config = provider.config
    return ProviderInfoResponse(
        alias=config.alias,
        display_name=config.display_name,
        authorization_url=config.authorization_url,
        token_url=config.token_url,
        user_info_url=config.user_info_url,
        default_scope=provider.default_scopes,
        supports_external_exchange=provider.supports_external_exchange,
        profile_endpoint_for_validation=provider.get_profile_endpoint_for_validation(),
        allowed_hosted_domains=list(config.allowed_hosted_domains),
    )


@federation_router.post("/identity", response_model=IdentityResponse)
async def federated_identity(
    body: FederatedLoginRequest,
    provider: MailRuIdentityProvider = Depends(get_provider),
) -> IdentityResponse:
    """Resolve an access token from the authorization code flow."""
    identity = await provider.federated_identity(body.access_token)
    return IdentityResponse.from_identity(identity)


@federation_router.post("/token-exchange", response_model=IdentityResponse)
async def token_exchange(
    body: TokenExchangeRequest,
    provider: MailRuIdentityProvider = Depends(get_provider),
) -> IdentityResponse:
    """Validate an externally issued Mail.ru token and return its identity."""
    if not provider.supports_external_exchange:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="External token exchange is not supported",
        )

    if body.subject_token_type != ACCESS_TOKEN_TYPE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported subject_token_type: {body.subject_token_type}",
        )

    identity = await provider.exchange_external_token(body.subject_token)
    return IdentityResponse.from_identity(identity)
