"""Guest, audit and webhook response models."""

from pydantic import BaseModel, Field

from checkin.models.enums import GuestStatus
from checkin.models.events import AuditRecord
from checkin.models.guest import GuestRecord, GuestStats
from checkin.models.notification import ChannelResult


class GuestResponse(BaseModel):
    """Single guest."""

    success: bool = True
    guest: GuestRecord


class GuestListResponse(BaseModel):
    """List of guests, most recent first."""

    success: bool = True
    guests: list[GuestRecord] = Field(default_factory=list)
    count: int = 0


class GuestCreatedResponse(BaseModel):
    """Result of manual guest registration."""

    success: bool = True
    guest: GuestRecord
    notifications: list[ChannelResult] = Field(default_factory=list)


class StatusChangeResponse(BaseModel):
    """Result of a status transition."""

    success: bool = True
    guest: GuestRecord
    previous_status: GuestStatus
    new_status: GuestStatus
    notifications: list[ChannelResult] = Field(
        default_factory=list,
        description="Per-channel delivery outcome; failures do not undo the change",
    )


class GuestStatsResponse(BaseModel):
    """Dashboard counters."""

    success: bool = True
    stats: GuestStats


class AuditLogResponse(BaseModel):
    """Audit records, most recent first."""

    success: bool = True
    records: list[AuditRecord] = Field(default_factory=list)
    count: int = 0


class WebhookResponse(BaseModel):
    """Acknowledgement for form and chat webhooks."""

    received: bool = True
    processing_result: str = Field(..., description="success, rejected or error")
    guest_id: str | None = None
    message: str | None = None
    notifications: list[ChannelResult] = Field(default_factory=list)
