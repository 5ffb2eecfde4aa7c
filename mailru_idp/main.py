"""
FastAPI Federation Service Application Factory
===============================================

Entry point for the service the identity broker calls to federate Mail.ru
logins.

Architecture:
    Broker (OIDC code exchange) → this service → oauth.mail.ru/userinfo

Routers:
    - /federation/*  : Provider metadata, federated login, token exchange
    - /health        : Health check endpoint

Environment Variables:
    - MAILRU_ALIAS: Provider alias (default: mailru)
    - MAILRU_HOSTED_DOMAIN: Comma-separated allowed email domains (default: any)
    - MAILRU_DISPLAY_NAME: Provider label in messages (default: Mail.ru)
    - HTTP_TIMEOUT_SECONDS: Profile request timeout (default: 10)
    - LOG_LEVEL: Logging level (default: INFO)
    - LOG_SENSITIVE_VALUES: Log raw tokens/profiles at DEBUG (default: false)

Running the Service:
    Development:
        uvicorn mailru_idp.main:app --reload --host 0.0.0.0 --port 8080

    With custom log level:
        LOG_LEVEL=DEBUG uvicorn mailru_idp.main:app --reload
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from mailru_idp import __version__
from mailru_idp.config import get_settings
from mailru_idp.federation.config import provider_config_from_settings
from mailru_idp.federation.errors import (
    DomainNotAllowedError,
    FederationError,
    FederationIOError,
    IdentityBrokerError,
    InvalidEmailError,
    MissingEmailError,
)
from mailru_idp.federation.routes import federation_router
from mailru_idp.models import ErrorResponse, HealthResponse

SERVICE_NAME = "mailru-idp"


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO", log_sensitive: bool = False) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_sensitive: Keep httpx request logging, whose URLs carry the
                       access_token query parameter
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    if not log_sensitive:
        logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Configures logging and logs the effective provider configuration.
    """
    settings = get_settings()

    setup_logging(settings.LOG_LEVEL, settings.LOG_SENSITIVE_VALUES)
    logger = logging.getLogger("mailru_idp.main")

    config = provider_config_from_settings(settings)
    logger.info(
        "Starting federation service",
        extra={
            "alias": config.alias,
            "allowed_domains": list(config.allowed_hosted_domains),
            "log_level": settings.LOG_LEVEL,
        }
    )
    if settings.LOG_SENSITIVE_VALUES:
        logger.warning("LOG_SENSITIVE_VALUES is enabled, raw tokens will be logged at DEBUG level")

    yield

    logger.info("Federation service shutdown complete")


# =============================================================================
# Error Translation
# =============================================================================

def federation_error_response(exc: FederationError) -> JSONResponse:
    """
    Map a federation error to an HTTP error response.

    Profile errors are client/configuration errors (4xx); transport errors
    are upstream failures (502) unless the provider refused the token (401).
    """
    details: Dict[str, Any] = {"provider": exc.provider}

    if isinstance(exc, DomainNotAllowedError):
        status_code, error = status.HTTP_403_FORBIDDEN, "domain_not_allowed"
        details["domain"] = exc.domain
    elif isinstance(exc, MissingEmailError):
        status_code, error = status.HTTP_400_BAD_REQUEST, "missing_email"
    elif isinstance(exc, InvalidEmailError):
        status_code, error = status.HTTP_400_BAD_REQUEST, "invalid_email"
    else:
        io_error = exc.cause if isinstance(exc, IdentityBrokerError) else exc
        if isinstance(io_error, FederationIOError) and io_error.token_rejected:
            status_code, error = status.HTTP_401_UNAUTHORIZED, "invalid_token"
        else:
            status_code, error = status.HTTP_502_BAD_GATEWAY, "provider_unavailable"

    body = ErrorResponse(error=error, message=exc.message, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


# Create FastAPI application
def create_app() -> FastAPI:
    """
    Application factory function.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Mail.ru Federation Service",
        description="Mail.ru identity federation for the identity broker",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.include_router(federation_router)

    @app.get("/health", tags=["System"], response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        return HealthResponse(status="ok", service=SERVICE_NAME, version=__version__)

    @app.get("/", tags=["System"])
    async def root() -> Dict[str, Any]:
        """
        Root endpoint with service information.

        Returns:
            dict: Service metadata and available endpoints
        """
        return {
            "service": SERVICE_NAME,
            "version": __version__,
            "description": "Mail.ru identity federation for the identity broker",
            "endpoints": {
                "health": "/health",
                "docs": "/docs",
                "provider": "/federation/provider",
                "identity": "/federation/identity",
                "token_exchange": "/federation/token-exchange",
            }
        }

    @app.exception_handler(FederationError)
    async def federation_exception_handler(request: Request, exc: FederationError) -> JSONResponse:
        logger = logging.getLogger("mailru_idp.main")
        logger.info(
            f"Federation request failed: {exc.message}",
            extra={
                "path": request.url.path,
                "exception_type": type(exc).__name__,
            }
        )
        return federation_error_response(exc)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns a standardized error response.
        """
        logger = logging.getLogger("mailru_idp.main")
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        body = ErrorResponse(
            error="internal_server_error",
            message="An unexpected error occurred",
            details={"detail": str(exc)} if settings.LOG_LEVEL == "DEBUG" else None,
        )
        return JSONResponse(status_code=500, content=body.model_dump(mode="json"))

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    settings = get_settings()

    uvicorn.run(
        "mailru_idp.main:app",
        host=settings.SERVICE_HOST,
        port=settings.SERVICE_PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
