"""FastAPI application for the Storefront REST API.

This package provides REST endpoints for:
- Health checks
- Account registration, login and logout
- Checkout session creation for orders
- The payment gateway webhook

Configuration is loaded and the token issuer is built while the app is
created, so a missing signing secret stops startup instead of failing
individual requests.
"""

import logging
import os
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from storefront import __version__
from storefront.utils.logging import configure_logging
from storefront_api.dependencies import get_config, get_token_issuer
from storefront_api.exceptions import register_exception_handlers
from storefront_api.middleware.body_limit import BodySizeLimitMiddleware
from storefront_api.middleware.correlation import CorrelationIdMiddleware
from storefront_api.routes.auth import router as auth_router
from storefront_api.routes.health import router as health_router
from storefront_api.routes.payments import router as payments_router
from storefront_api.routes.webhooks import WEBHOOK_PATH
from storefront_api.routes.webhooks import router as webhooks_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


async def ping() -> dict[str, Any]:
    """Root health check endpoint at /api/ping."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "storefront-api",
    }


def create_app() -> FastAPI:
    """Build the application.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    configure_logging(getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))

    config = get_config()
    get_token_issuer()

    app = FastAPI(
        title="Storefront API",
        description="REST API for authentication, checkout and payment webhooks",
        version=__version__,
    )

    # Webhook bodies are signed bytes and must not be limited or parsed here
    app.add_middleware(
        BodySizeLimitMiddleware,
        max_body_bytes=config.max_body_bytes,
        exempt_paths=[f"{API_PREFIX}{WEBHOOK_PATH}"],
    )
    # Cookies only flow cross-origin with an explicit origin list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router, prefix="/api")
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(payments_router, prefix=API_PREFIX)
    app.include_router(webhooks_router, prefix=API_PREFIX)
    app.add_api_route("/api/ping", ping, methods=["GET"], tags=["health"])

    logger.info("Storefront API created (environment=%s)", config.environment)
    return app


app = create_app()

# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: True)
    """
    import uvicorn

    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run(
            "storefront_api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["api/src", "shared/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
