"""FastAPI dependency injection providers for check-in services.

Factory functions use @lru_cache so each collaborator is built once per
process. This module is the composition root: it decides which store
implementation and which channels the core runs with.

Service Dependency Graph:
    DynamoDBService (CHECKIN_STORAGE=dynamodb)
        ├── DynamoGuestStore
        └── DynamoAuditStore
    SSMService (CHECKIN_SECRETS=ssm)
        ├── TwilioSmsChannel ─┐
        └── SlackChannel ─────┴── NotificationDispatcher
    CheckinService(guest store, audit store, dispatcher)

Configuration (environment):
    CHECKIN_STORAGE: "dynamodb" (default) or "memory"
    CHECKIN_SECRETS: "ssm" (default) or "env" (TWILIO_AUTH_TOKEN,
        SLACK_BOT_TOKEN, SLACK_SIGNING_SECRET, JOTFORM_WEBHOOK_SECRET)
    TWILIO_ACCOUNT_SID, TWILIO_FROM_NUMBER, SLACK_CHANNEL_ID
    CHECKIN_STORE_TIMEOUT_SECONDS, CHECKIN_CHANNEL_TIMEOUT_SECONDS

Testing:
    Use reset_services() to clear cached instances between tests, or
    app.dependency_overrides[get_checkin_service].
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from checkin.services.channels import SlackChannel, TwilioSmsChannel
from checkin.services.checkin_service import CheckinService
from checkin.services.dynamodb import DynamoDBService
from checkin.services.notifications import (
    DEFAULT_CHANNEL_TIMEOUT_SECONDS,
    NotificationDispatcher,
)
from checkin.services.ssm_service import get_ssm_service
from checkin.services.state_machine import DEFAULT_STORE_TIMEOUT_SECONDS
from checkin.stores.base import AuditStore, GuestStore
from checkin.stores.dynamodb import DynamoAuditStore, DynamoGuestStore
from checkin.stores.inmemory import InMemoryAuditStore, InMemoryGuestStore

logger = logging.getLogger(__name__)

# Secret name -> env var used when CHECKIN_SECRETS=env
SECRET_ENV_VARS: dict[str, str] = {
    "twilio_auth_token": "TWILIO_AUTH_TOKEN",
    "slack_bot_token": "SLACK_BOT_TOKEN",
    "slack_signing_secret": "SLACK_SIGNING_SECRET",
    "jotform_webhook_secret": "JOTFORM_WEBHOOK_SECRET",
}


@dataclass(frozen=True)
class WebhookSecrets:
    """Shared secrets for inbound webhook verification. Empty disables a check."""

    jotform: str = ""
    slack_signing: str = ""


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except ValueError:
        logger.warning("Invalid %s, using %s", name, default)
        return default


def storage_backend() -> str:
    return os.getenv("CHECKIN_STORAGE", "dynamodb").lower()


def get_secret(name: str) -> str:
    """Resolve a named secret from the configured source."""
    if os.getenv("CHECKIN_SECRETS", "ssm").lower() == "env":
        return os.getenv(SECRET_ENV_VARS[name], "")
    return get_ssm_service().get_secret(name)


@lru_cache
def get_dynamodb_service() -> DynamoDBService:
    """Get cached DynamoDBService instance."""
    return DynamoDBService()


@lru_cache
def get_guest_store() -> GuestStore:
    """Get cached guest store for the configured backend."""
    if storage_backend() == "memory":
        return InMemoryGuestStore()
    return DynamoGuestStore(get_dynamodb_service())


@lru_cache
def get_audit_store() -> AuditStore:
    """Get cached audit store for the configured backend."""
    if storage_backend() == "memory":
        return InMemoryAuditStore()
    return DynamoAuditStore(get_dynamodb_service())


@lru_cache
def get_sms_channel() -> TwilioSmsChannel | None:
    """Get cached Twilio channel, or None when no account is configured."""
    account_sid = os.getenv("TWILIO_ACCOUNT_SID", "")
    if not account_sid:
        logger.info("TWILIO_ACCOUNT_SID not set; SMS notifications disabled")
        return None
    return TwilioSmsChannel(
        account_sid=account_sid,
        auth_token=get_secret("twilio_auth_token"),
        from_number=os.getenv("TWILIO_FROM_NUMBER", ""),
    )


@lru_cache
def get_slack_channel() -> SlackChannel | None:
    """Get cached Slack channel, or None when no channel ID is configured."""
    if not os.getenv("SLACK_CHANNEL_ID"):
        logger.info("SLACK_CHANNEL_ID not set; team-chat notifications disabled")
        return None
    return SlackChannel(bot_token=get_secret("slack_bot_token"))


@lru_cache
def get_dispatcher() -> NotificationDispatcher:
    """Get cached NotificationDispatcher over the configured channels."""
    return NotificationDispatcher(
        sms=get_sms_channel(),
        slack=get_slack_channel(),
        slack_channel_id=os.getenv("SLACK_CHANNEL_ID", ""),
        timeout=_float_env("CHECKIN_CHANNEL_TIMEOUT_SECONDS", DEFAULT_CHANNEL_TIMEOUT_SECONDS),
    )


@lru_cache
def get_checkin_service() -> CheckinService:
    """Get cached CheckinService instance.

    Returns:
        CheckinService configured with the stores and dispatcher above.
    """
    return CheckinService(
        guests=get_guest_store(),
        audit_store=get_audit_store(),
        dispatcher=get_dispatcher(),
        store_timeout=_float_env("CHECKIN_STORE_TIMEOUT_SECONDS", DEFAULT_STORE_TIMEOUT_SECONDS),
    )


@lru_cache
def get_webhook_secrets() -> WebhookSecrets:
    """Get cached webhook verification secrets."""
    return WebhookSecrets(
        jotform=get_secret("jotform_webhook_secret"),
        slack_signing=get_secret("slack_signing_secret"),
    )


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    """
    get_dynamodb_service.cache_clear()
    get_guest_store.cache_clear()
    get_audit_store.cache_clear()
    get_sms_channel.cache_clear()
    get_slack_channel.cache_clear()
    get_dispatcher.cache_clear()
    get_checkin_service.cache_clear()
    get_webhook_secrets.cache_clear()
    get_ssm_service.cache_clear()
