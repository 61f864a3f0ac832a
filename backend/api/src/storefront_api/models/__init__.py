"""API-specific request/response models.

Domain models (User, Order, CheckoutSession, ...) live in storefront.models
and are reused here where appropriate.

Modules:
- common: Shared response wrappers and error models
- auth: Registration, login and current-user models
- payments: Checkout session request/response models
"""

__all__: list[str] = []
