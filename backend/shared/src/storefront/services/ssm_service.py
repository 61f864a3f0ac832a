"""SSM Parameter Store access for startup secrets.

Configuration loading uses this when a secret (token signing key, Stripe
keys) is not present in the environment. All missing secrets are fetched
in one ``GetParameters`` call with decryption; values are cached for the
life of the process.
"""

import logging
from collections.abc import Iterable
from functools import lru_cache
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

# GetParameters accepts at most 10 names per call
MAX_NAMES_PER_CALL = 10


class SSMServiceError(Exception):
    """Raised when secrets cannot be read from SSM."""


class SSMService:
    """Reads SecureString parameters under a path prefix.

    Usage:
        secrets = get_ssm_service().get_secrets("/storefront/prod", ["jwt_secret"])
        secrets["jwt_secret"]
    """

    def __init__(self, client: Any | None = None) -> None:
        self._client = client or boto3.client("ssm")
        self._cache: dict[str, str] = {}

    @staticmethod
    def parameter_path(prefix: str, name: str) -> str:
        return f"{prefix.rstrip('/')}/{name}"

    def get_secrets(self, prefix: str, names: Iterable[str]) -> dict[str, str]:
        """Fetch ``{prefix}/{name}`` for every name.

        Args:
            prefix: Parameter path prefix (e.g. "/storefront/prod")
            names: Secret names below the prefix

        Returns:
            Mapping of name to decrypted value.

        Raises:
            SSMServiceError: If any parameter is missing or the call fails.
        """
        paths = {self.parameter_path(prefix, name): name for name in names}
        uncached = [path for path in paths if path not in self._cache]

        for start in range(0, len(uncached), MAX_NAMES_PER_CALL):
            self._fetch(uncached[start : start + MAX_NAMES_PER_CALL])

        return {name: self._cache[path] for path, name in paths.items()}

    def _fetch(self, paths: list[str]) -> None:
        logger.info("Fetching %d SSM parameter(s)", len(paths))
        try:
            response = self._client.get_parameters(Names=paths, WithDecryption=True)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "AccessDeniedException":
                raise SSMServiceError(
                    "Access denied to SSM parameters. Check IAM permissions for ssm:GetParameters."
                ) from e
            raise SSMServiceError(f"Failed to retrieve SSM parameters: {e}") from e
        except BotoCoreError as e:
            # Credential and endpoint problems are not ClientErrors
            raise SSMServiceError(f"Failed to retrieve SSM parameters: {e}") from e

        missing = response.get("InvalidParameters", [])
        if missing:
            raise SSMServiceError(f"SSM parameters not found: {', '.join(sorted(missing))}")

        for parameter in response.get("Parameters", []):
            self._cache[parameter["Name"]] = parameter["Value"]


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    return SSMService()
