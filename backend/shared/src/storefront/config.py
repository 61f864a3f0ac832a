"""Process-wide configuration for the trust boundary.

The configuration is an immutable object built once at startup and handed
to the services that need it (token issuer, session transport, gateway
adapter). Nothing mutates it afterwards.

Secrets are read from environment variables. When ``SSM_PARAMETER_PREFIX``
is set, missing secrets are fetched from SSM Parameter Store under that
prefix instead (e.g. ``/storefront/prod/jwt_secret``).

Environment variables:
    ENVIRONMENT: Deployment name; only "local" may serve insecure cookies
    JWT_SECRET: HS256 signing secret (at least 32 characters)
    JWT_EXPIRES_DAYS: Token and cookie lifetime in days (default: 7)
    COOKIE_SAMESITE: strict | lax | none (default: lax)
    STRIPE_SECRET_KEY: Stripe API key
    STRIPE_WEBHOOK_SECRET: Stripe endpoint signing secret (whsec_...)
    STRIPE_WEBHOOK_TOLERANCE: Max signature age in seconds (default: 300)
    STRIPE_TIMEOUT_SECONDS: Gateway call timeout (default: 10)
    FRONTEND_URL: Base URL for checkout success/cancel redirects
    MAX_BODY_BYTES: Request body limit for parsed-JSON routes
    CORS_ALLOWED_ORIGINS: Comma-separated origins allowed with credentials
    BCRYPT_ROUNDS: Password hashing cost factor (default: 12)
"""

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from storefront.models.enums import CookieSameSite
from storefront.models.errors import ConfigurationError

logger = logging.getLogger(__name__)

LOCAL_ENVIRONMENT = "local"
MIN_SECRET_LENGTH = 32

# Secret name -> environment variable
SECRET_ENV_VARS: dict[str, str] = {
    "jwt_secret": "JWT_SECRET",
    "stripe_secret_key": "STRIPE_SECRET_KEY",
    "stripe_webhook_secret": "STRIPE_WEBHOOK_SECRET",
}


class AppConfig(BaseModel):
    """Immutable configuration consumed by the core services."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev")
    jwt_secret: str = Field(..., min_length=MIN_SECRET_LENGTH, repr=False)
    token_lifetime_days: int = Field(default=7, gt=0)
    cookie_name: str = Field(default="token")
    cookie_same_site: CookieSameSite = Field(default=CookieSameSite.LAX)
    stripe_secret_key: str = Field(..., min_length=1, repr=False)
    stripe_webhook_secret: str = Field(..., min_length=1, repr=False)
    webhook_tolerance_seconds: int = Field(default=300, gt=0)
    gateway_timeout_seconds: float = Field(default=10.0, gt=0)
    frontend_url: str = Field(default="http://localhost:3000")
    max_body_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    cors_allowed_origins: tuple[str, ...] = Field(
        default=("http://localhost:3000", "http://127.0.0.1:3000"),
    )

    @property
    def is_local(self) -> bool:
        return self.environment == LOCAL_ENVIRONMENT

    @property
    def cookie_secure(self) -> bool:
        """Whether the session cookie carries the Secure attribute.

        Browsers discard SameSite=None cookies that are not Secure, so that
        policy forces Secure even locally.
        """
        return not self.is_local or self.cookie_same_site == CookieSameSite.NONE


def _resolve_secrets(environ: Mapping[str, str], ssm_prefix: str | None) -> dict[str, str]:
    """Read secrets from the environment, fetching the absent ones from SSM.

    Raises:
        ConfigurationError: If a secret is missing or the SSM lookup fails.
    """
    secrets = {name: environ[var] for name, var in SECRET_ENV_VARS.items() if environ.get(var)}
    absent = [name for name in SECRET_ENV_VARS if name not in secrets]

    if absent and ssm_prefix:
        from storefront.services.ssm_service import SSMServiceError, get_ssm_service

        try:
            secrets.update(get_ssm_service().get_secrets(ssm_prefix, absent))
        except SSMServiceError as e:
            raise ConfigurationError(f"Failed to load secrets: {e}") from e

    for name, var in SECRET_ENV_VARS.items():
        if not secrets.get(name):
            raise ConfigurationError(f"{var} is not configured")
    return secrets


def load_config(environ: Mapping[str, str] | None = None) -> AppConfig:
    """Build the configuration from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        Frozen AppConfig.

    Raises:
        ConfigurationError: If a secret is missing or a value is invalid.
    """
    env = os.environ if environ is None else environ
    ssm_prefix = env.get("SSM_PARAMETER_PREFIX")

    values: dict[str, object] = dict(_resolve_secrets(env, ssm_prefix))

    optional = {
        "environment": "ENVIRONMENT",
        "token_lifetime_days": "JWT_EXPIRES_DAYS",
        "cookie_same_site": "COOKIE_SAMESITE",
        "webhook_tolerance_seconds": "STRIPE_WEBHOOK_TOLERANCE",
        "gateway_timeout_seconds": "STRIPE_TIMEOUT_SECONDS",
        "frontend_url": "FRONTEND_URL",
        "max_body_bytes": "MAX_BODY_BYTES",
        "bcrypt_rounds": "BCRYPT_ROUNDS",
    }
    for field_name, env_var in optional.items():
        if env.get(env_var):
            values[field_name] = env[env_var]

    if "cookie_same_site" in values:
        values["cookie_same_site"] = str(values["cookie_same_site"]).lower()

    origins = env.get("CORS_ALLOWED_ORIGINS")
    if origins:
        values["cors_allowed_origins"] = tuple(o.strip() for o in origins.split(",") if o.strip())

    try:
        config = AppConfig.model_validate(values)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise ConfigurationError(f"Invalid configuration: {fields}") from e

    logger.info(
        "Configuration loaded: environment=%s, cookie_secure=%s, same_site=%s",
        config.environment,
        config.cookie_secure,
        config.cookie_same_site.value,
    )
    return config
