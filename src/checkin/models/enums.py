"""Enumeration types for visitor check-in data models."""

from enum import Enum


class GuestStatus(str, Enum):
    """Lifecycle status of a guest visit (wire-stable values)."""

    PENDING = "pending"
    APPROVED = "approved"
    CHECKED_IN = "checked-in"
    WITH_HOST = "with-host"
    CHECKED_OUT = "checked-out"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether the visit is over for this status."""
        return self in (GuestStatus.CHECKED_OUT, GuestStatus.CANCELLED)


class PerformedBy(str, Enum):
    """Actor that triggered a state-affecting action."""

    FORM_SUBMISSION = "form-submission"
    RECEPTIONIST = "receptionist"
    API = "api"
    AUTOMATED_SYSTEM = "automated-system"


class AuditAction(str, Enum):
    """Closed set of audited actions."""

    GUEST_CREATED = "GUEST_CREATED"
    FORM_SUBMITTED = "FORM_SUBMITTED"
    STATUS_UPDATED = "STATUS_UPDATED"
    SMS_CONSENT_RECORDED = "SMS_CONSENT_RECORDED"
    SMS_RECEIVED = "SMS_RECEIVED"
    SLACK_INTERACTION = "SLACK_INTERACTION"


class ConsentStatus(str, Enum):
    """Outcome stored as new_status on SMS_CONSENT_RECORDED audit records."""

    CONSENTED = "CONSENTED"
    DECLINED = "DECLINED"


class NotificationChannel(str, Enum):
    """Independent notification delivery mechanisms."""

    GUEST_SMS = "guest_sms"
    HOST_SMS = "host_sms"
    SLACK = "slack"
