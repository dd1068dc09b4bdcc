"""Transition and audit event models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .enums import AuditAction, GuestStatus, PerformedBy


class TransitionEvent(BaseModel):
    """Record of a single status change.

    Not persisted directly; drives both notification dispatch and the
    STATUS_UPDATED audit record.
    """

    model_config = ConfigDict(frozen=True)

    guest_id: str
    previous_status: GuestStatus
    new_status: GuestStatus
    performed_by: PerformedBy
    notes: str = ""
    timestamp: datetime

    @property
    def is_noop(self) -> bool:
        """True when the guest was already in the requested status."""
        return self.previous_status == self.new_status


class AuditRecord(BaseModel):
    """Append-only audit log entry.

    guest_name is a snapshot taken at write time so the trail stays readable
    after the guest record changes.
    """

    model_config = ConfigDict(frozen=True)

    audit_id: str = Field(..., description="Deterministic idempotency key")
    timestamp: datetime
    guest_id: str
    guest_name: str = ""
    action: AuditAction
    previous_status: str | None = Field(
        default=None, description="Guest status (or consent state) before the action"
    )
    new_status: str | None = Field(
        default=None, description="Guest status (or consent state) after the action"
    )
    performed_by: str
    notes: str = ""
    ip_address: str | None = None
