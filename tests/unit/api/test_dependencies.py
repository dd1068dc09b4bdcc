"""Unit tests for dependency providers and backend selection."""

from collections.abc import Generator

import boto3
import pytest

from checkin.services.channels import SlackChannel, TwilioSmsChannel
from checkin.stores.dynamodb import DynamoAuditStore, DynamoGuestStore
from checkin.stores.inmemory import InMemoryAuditStore, InMemoryGuestStore
from checkin_api.dependencies import (
    get_checkin_service,
    get_dispatcher,
    get_secret,
    get_webhook_secrets,
    reset_services,
    storage_backend,
)

CHANNEL_ENV = (
    "TWILIO_ACCOUNT_SID",
    "TWILIO_FROM_NUMBER",
    "SLACK_CHANNEL_ID",
    "TWILIO_AUTH_TOKEN",
    "SLACK_BOT_TOKEN",
    "SLACK_SIGNING_SECRET",
    "JOTFORM_WEBHOOK_SECRET",
)


@pytest.fixture(autouse=True)
def clean_services(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    for name in CHANNEL_ENV:
        monkeypatch.delenv(name, raising=False)
    reset_services()
    yield
    reset_services()


@pytest.fixture
def env_secrets(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHECKIN_STORAGE", "memory")
    monkeypatch.setenv("CHECKIN_SECRETS", "env")


class TestBackendSelection:
    """Tests for store selection via CHECKIN_STORAGE."""

    def test_defaults_to_dynamodb(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CHECKIN_STORAGE", raising=False)
        assert storage_backend() == "dynamodb"

    def test_memory_backend(self, env_secrets: None) -> None:
        service = get_checkin_service()

        assert isinstance(service.guests, InMemoryGuestStore)
        assert isinstance(service.audit.store, InMemoryAuditStore)
        assert get_checkin_service() is service

    def test_dynamodb_backend(self, mocked_aws: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHECKIN_STORAGE", "dynamodb")
        monkeypatch.setenv("CHECKIN_SECRETS", "env")

        service = get_checkin_service()

        assert isinstance(service.guests, DynamoGuestStore)
        assert isinstance(service.audit.store, DynamoAuditStore)

    def test_reset_services_rebuilds(self, env_secrets: None) -> None:
        first = get_checkin_service()
        reset_services()
        assert get_checkin_service() is not first


class TestChannels:
    """Tests for channel wiring."""

    def test_channels_disabled_without_config(self, env_secrets: None) -> None:
        dispatcher = get_dispatcher()

        assert dispatcher.sms is None
        assert dispatcher.slack is None

    def test_channels_from_env(self, env_secrets: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC123")
        monkeypatch.setenv("TWILIO_FROM_NUMBER", "+15550000000")
        monkeypatch.setenv("TWILIO_AUTH_TOKEN", "twilio-token")
        monkeypatch.setenv("SLACK_CHANNEL_ID", "C0123456789")
        monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-token")
        monkeypatch.setenv("CHECKIN_CHANNEL_TIMEOUT_SECONDS", "2.5")

        dispatcher = get_dispatcher()

        assert isinstance(dispatcher.sms, TwilioSmsChannel)
        assert dispatcher.sms.auth_token == "twilio-token"
        assert dispatcher.sms.from_number == "+15550000000"
        assert isinstance(dispatcher.slack, SlackChannel)
        assert dispatcher.slack.bot_token == "xoxb-token"
        assert dispatcher.slack_channel_id == "C0123456789"
        assert dispatcher.timeout == 2.5

    def test_invalid_timeout_falls_back(self, env_secrets: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHECKIN_CHANNEL_TIMEOUT_SECONDS", "soon")
        assert get_dispatcher().timeout > 0


class TestSecrets:
    """Tests for secret resolution."""

    def test_env_secrets(self, env_secrets: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JOTFORM_WEBHOOK_SECRET", "form-secret")
        monkeypatch.setenv("SLACK_SIGNING_SECRET", "slack-secret")

        secrets = get_webhook_secrets()

        assert secrets.jotform == "form-secret"
        assert secrets.slack_signing == "slack-secret"

    def test_missing_env_secret_is_empty(self, env_secrets: None) -> None:
        assert get_secret("slack_bot_token") == ""

    def test_ssm_secrets(self, mocked_aws: None, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHECKIN_SECRETS", "ssm")
        monkeypatch.setenv("ENVIRONMENT", "test")
        ssm = boto3.client("ssm", region_name="eu-west-1")
        ssm.put_parameter(
            Name="/checkin/test/jotform/webhook_secret", Value="ssm-form-secret", Type="SecureString"
        )

        secrets = get_webhook_secrets()

        assert secrets.jotform == "ssm-form-secret"
        assert secrets.slack_signing == ""
