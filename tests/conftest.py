"""Pytest configuration and fixtures for the visitor check-in tests.

This module provides reusable fixtures for testing:
- DynamoDB and SSM mocking with moto
- In-memory stores and recording notification channels
- Sample form payloads in each supported shape
"""

import os
from typing import Any, Generator

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-checkin")
os.environ.setdefault("ENVIRONMENT", "test")

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from checkin.models.guest import GuestRecord  # noqa: E402
from checkin.services.checkin_service import CheckinService  # noqa: E402
from checkin.services.notifications import NotificationDispatcher  # noqa: E402
from checkin.stores.inmemory import InMemoryAuditStore, InMemoryGuestStore  # noqa: E402
from factories import SLACK_CHANNEL, RecordingChannel, make_guest  # noqa: E402


# === Core Fixtures ===


@pytest.fixture
def guest_store() -> InMemoryGuestStore:
    return InMemoryGuestStore()


@pytest.fixture
def audit_store() -> InMemoryAuditStore:
    return InMemoryAuditStore()


@pytest.fixture
def sms_channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def slack_channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def dispatcher(sms_channel: RecordingChannel, slack_channel: RecordingChannel) -> NotificationDispatcher:
    return NotificationDispatcher(
        sms=sms_channel,
        slack=slack_channel,
        slack_channel_id=SLACK_CHANNEL,
        timeout=1.0,
    )


@pytest.fixture
def service(
    guest_store: InMemoryGuestStore,
    audit_store: InMemoryAuditStore,
    dispatcher: NotificationDispatcher,
) -> CheckinService:
    return CheckinService(
        guests=guest_store,
        audit_store=audit_store,
        dispatcher=dispatcher,
        store_timeout=1.0,
    )


@pytest.fixture
def sample_guest() -> GuestRecord:
    return make_guest()


# === Sample Payloads ===


@pytest.fixture
def field_id_payload() -> dict[str, Any]:
    """Raw q<id>_<name> keys matching the stable field-ID table."""
    return {
        "submissionID": "5829301746321",
        "formID": "241234567890",
        "q16_name": {"first": "Bob", "last": "Smith"},
        "q17_email": "bob@example.com",
        "q152_phone": "(555) 222-3333",
        "q174_consent": ["I agree to receive SMS updates"],
        "q20_hostName": "Grace Hopper",
        "q22_purposeOf": "Interview",
    }


@pytest.fixture
def answers_payload() -> dict[str, Any]:
    """Provider API submission with labelled answers."""
    return {
        "submission": {
            "id": "9988776655443",
            "form_id": "241234567890",
            "answers": {
                "3": {"name": "guestName", "text": "Your Name", "answer": {"first": "Ada", "last": "Lovelace"}},
                "4": {"name": "email", "text": "E-mail", "answer": "ada@example.com"},
                "5": {
                    "name": "phoneNumber",
                    "text": "Phone Number",
                    "answer": {"area": "555", "phone": "1234567"},
                },
                "6": {"name": "hostName", "text": "Host Name", "answer": "Charles Babbage"},
                "7": {"name": "hostPhone", "text": "Host Phone", "answer": "555-987-6543"},
                "8": {"name": "purpose", "text": "Purpose of Visit", "answer": "Design review"},
                "9": {
                    "name": "smsConsent",
                    "text": "SMS Consent",
                    "answer": ["I consent to SMS"],
                },
                "10": {
                    "name": "visitDate",
                    "text": "Visit Date",
                    "answer": {"month": "06", "day": "15", "year": "2025"},
                },
            },
        }
    }


@pytest.fixture
def structured_payload() -> dict[str, Any]:
    """Guest-shaped object posted directly by an integration."""
    return {
        "fullName": "Grace Brewster Hopper",
        "email": "grace@example.com",
        "phoneNumber": "+1 (555) 444-5555",
        "company": "Navy",
        "hostName": "Ada Lovelace",
        "purposeOfVisit": "Compiler demo",
        "smsConsent": True,
        "notificationPreferences": {"sms": True, "slack": False},
    }


# === AWS Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"


@pytest.fixture
def mocked_aws(aws_credentials: None) -> Generator[None, None, None]:
    with mock_aws():
        yield


@pytest.fixture
def create_tables(mocked_aws: None) -> None:
    """Create the guests and audit-log tables."""
    client = boto3.client("dynamodb", region_name="eu-west-1")
    prefix = os.environ["DYNAMODB_TABLE_PREFIX"]
    client.create_table(
        TableName=f"{prefix}-guests",
        KeySchema=[{"AttributeName": "guest_id", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "guest_id", "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )
    client.create_table(
        TableName=f"{prefix}-audit-log",
        KeySchema=[
            {"AttributeName": "guest_id", "KeyType": "HASH"},
            {"AttributeName": "sort_key", "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": "guest_id", "AttributeType": "S"},
            {"AttributeName": "sort_key", "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )
