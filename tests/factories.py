"""Shared test doubles and record builders."""

import datetime as dt
from typing import Any

from checkin.models.enums import GuestStatus
from checkin.models.guest import GuestRecord
from checkin.models.notification import OutboundMessage, SendResult

SLACK_CHANNEL = "C0123456789"
FORM_SECRET = "form-secret"
SLACK_SECRET = "slack-signing-secret"


class RecordingChannel:
    """Channel double that records sends and returns a fixed outcome."""

    def __init__(self, success: bool = True, error: str | None = None) -> None:
        self.success = success
        self.error = error
        self.sent: list[tuple[str, OutboundMessage]] = []

    async def send(self, target: str, message: OutboundMessage) -> SendResult:
        self.sent.append((target, message))
        if self.success:
            return SendResult(success=True, message_id=f"msg-{len(self.sent)}")
        return SendResult(success=False, error=self.error or "send failed")

    @property
    def targets(self) -> list[str]:
        return [target for target, _ in self.sent]


class RaisingChannel:
    """Channel double that breaks its contract by raising."""

    def __init__(self) -> None:
        self.calls = 0

    async def send(self, target: str, message: OutboundMessage) -> SendResult:
        self.calls += 1
        raise ConnectionError("chat service unreachable")


def make_guest(**overrides: Any) -> GuestRecord:
    """Build a GuestRecord with sensible defaults."""
    now = dt.datetime.now(dt.UTC)
    data: dict[str, Any] = {
        "id": "guest_abc123_1700000000000",
        "full_name": "Ada Lovelace",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": "ada@example.com",
        "phone_number": "+15551234567",
        "company": "Analytical Engines",
        "host_name": "Charles Babbage",
        "host_phone": "+15559876543",
        "purpose_of_visit": "Design review",
        "visit_date": now.date(),
        "status": GuestStatus.PENDING,
        "sms_consent_given": True,
        "sms_consent_timestamp": now,
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return GuestRecord(**data)
