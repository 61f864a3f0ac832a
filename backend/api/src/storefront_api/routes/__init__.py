"""API routes package.

Routers are organized by domain:

- health: Health check endpoints
- auth: Registration, login, logout and current user
- payments: Checkout session creation (auth required)
- webhooks: Payment gateway webhook receiver (raw body, signature verified)

All routers are registered in main.py with the /api/v1 prefix, except
health which sits under /api.
"""

from storefront_api.routes.auth import router as auth_router
from storefront_api.routes.health import router as health_router
from storefront_api.routes.payments import router as payments_router
from storefront_api.routes.webhooks import router as webhooks_router

__all__ = [
    "auth_router",
    "health_router",
    "payments_router",
    "webhooks_router",
]
