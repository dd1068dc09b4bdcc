"""SSM Parameter Store service for secure secret retrieval.

Provides cached access to AWS SSM Parameter Store SecureString parameters.
Used for the Twilio auth token, the Slack bot token and signing secret, and
the form webhook secret.
"""

import logging
import os
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

# Secret name -> path template under /checkin/{env}/
SECRET_PATHS: dict[str, str] = {
    "twilio_auth_token": "/checkin/{env}/twilio/auth_token",
    "slack_bot_token": "/checkin/{env}/slack/bot_token",
    "slack_signing_secret": "/checkin/{env}/slack/signing_secret",
    "jotform_webhook_secret": "/checkin/{env}/jotform/webhook_secret",
}


class SSMServiceError(Exception):
    """Raised when SSM parameter retrieval fails."""

    pass


class SSMService:
    """Service for retrieving secrets from AWS SSM Parameter Store.

    Features:
    - Retrieves SecureString parameters with automatic decryption
    - In-process caching to avoid repeated API calls
    - Environment-aware parameter paths

    Usage:
        ssm = SSMService()
        token = ssm.get_secret("slack_bot_token")
    """

    def __init__(self, environment: str | None = None) -> None:
        """Initialize the SSM client.

        Args:
            environment: Environment segment of parameter paths.
                Defaults to ENVIRONMENT env var, then "dev".
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        self._client = boto3.client("ssm")
        self._cache: dict[str, str] = {}

    def parameter_path(self, secret: str) -> str:
        """Full parameter path for a named secret."""
        return SECRET_PATHS[secret].format(env=self.environment)

    def get_parameter(self, name: str, *, use_cache: bool = True) -> str:
        """Retrieve a parameter value from SSM Parameter Store.

        Args:
            name: Full parameter path (e.g., "/checkin/dev/slack/bot_token")
            use_cache: Whether to use cached value if available (default: True)

        Returns:
            The decrypted parameter value.

        Raises:
            SSMServiceError: If parameter cannot be retrieved.
        """
        if use_cache and name in self._cache:
            logger.debug("SSM cache hit for %s", name)
            return self._cache[name]

        try:
            logger.info("Fetching SSM parameter: %s", name)
            response = self._client.get_parameter(Name=name, WithDecryption=True)
            value: str = response["Parameter"]["Value"]
            self._cache[name] = value
            return value

        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ParameterNotFound":
                raise SSMServiceError(f"SSM parameter not found: {name}") from e
            if error_code == "AccessDeniedException":
                raise SSMServiceError(
                    f"Access denied to SSM parameter: {name}. "
                    "Check IAM permissions for ssm:GetParameter."
                ) from e
            raise SSMServiceError(
                f"Failed to retrieve SSM parameter {name}: {e}"
            ) from e
        except BotoCoreError as e:
            raise SSMServiceError(f"Failed to reach SSM for {name}: {e}") from e

    def get_secret(self, secret: str, default: str = "") -> str:
        """Retrieve a named secret, falling back to ``default`` when unavailable.

        Missing secrets disable the feature that needs them (a channel, a
        signature check) instead of failing startup.
        """
        try:
            return self.get_parameter(self.parameter_path(secret))
        except SSMServiceError as e:
            logger.warning("Secret %s unavailable: %s", secret, e)
            return default

    def clear_cache(self) -> None:
        """Clear all cached parameters."""
        self._cache.clear()
        logger.info("SSM parameter cache cleared")


@lru_cache(maxsize=1)
def get_ssm_service() -> SSMService:
    """Get the shared SSMService instance.

    Returns:
        SSMService: Shared service instance.
    """
    return SSMService()
