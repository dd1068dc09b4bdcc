"""API test fixtures: the app wired to in-memory stores and recording channels."""

import asyncio
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from checkin.models.guest import GuestRecord
from checkin.services.checkin_service import CheckinService
from checkin.stores.inmemory import InMemoryGuestStore
from checkin_api.dependencies import WebhookSecrets, get_checkin_service, get_webhook_secrets
from checkin_api.main import app
from factories import FORM_SECRET, SLACK_SECRET, make_guest


@pytest.fixture
def overrides(service: CheckinService) -> Generator[None, None, None]:
    """Wire the app to the in-memory service and known webhook secrets."""
    app.dependency_overrides[get_checkin_service] = lambda: service
    app.dependency_overrides[get_webhook_secrets] = lambda: WebhookSecrets(
        jotform=FORM_SECRET, slack_signing=SLACK_SECRET
    )
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(overrides: None) -> Generator[TestClient, None, None]:
    """Test client whose lifespan (and audit drain) runs around each test."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def stored_guest(guest_store: InMemoryGuestStore) -> GuestRecord:
    guest = make_guest()
    asyncio.run(guest_store.append(guest))
    return guest
