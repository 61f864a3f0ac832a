"""REST API for the Storefront authentication and payment core."""
