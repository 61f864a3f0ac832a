"""Core domain package for the Storefront backend.

Holds the session-and-payment trust boundary: credentials, identity tokens,
checkout sessions and webhook reconciliation. HTTP concerns live in
``storefront_api``.
"""

__version__ = "0.1.0"
