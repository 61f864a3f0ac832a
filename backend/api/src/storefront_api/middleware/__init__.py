"""HTTP middleware for the Storefront API."""

from storefront_api.middleware.body_limit import BodySizeLimitMiddleware
from storefront_api.middleware.correlation import CorrelationIdMiddleware

__all__ = ["BodySizeLimitMiddleware", "CorrelationIdMiddleware"]
