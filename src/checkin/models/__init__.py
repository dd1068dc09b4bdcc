"""Pydantic models for visitor check-in data entities."""

from .enums import (
    AuditAction,
    ConsentStatus,
    GuestStatus,
    NotificationChannel,
    PerformedBy,
)
from .errors import (
    CheckinError,
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    ErrorCode,
    ErrorResponse,
    GuestNotFoundError,
    InvalidSignatureError,
    MalformedSubmissionError,
)
from .events import AuditRecord, TransitionEvent
from .guest import (
    DailyStatusCounts,
    GuestCreate,
    GuestRecord,
    GuestStats,
    GuestStatusUpdate,
    NotificationPreferences,
)
from .notification import (
    ChannelResult,
    DispatchResult,
    OutboundMessage,
    SendResult,
)

__all__ = [
    # Enums
    "AuditAction",
    "ConsentStatus",
    "GuestStatus",
    "NotificationChannel",
    "PerformedBy",
    # Guest
    "DailyStatusCounts",
    "GuestCreate",
    "GuestRecord",
    "GuestStats",
    "GuestStatusUpdate",
    "NotificationPreferences",
    # Events
    "AuditRecord",
    "TransitionEvent",
    # Notifications
    "ChannelResult",
    "DispatchResult",
    "OutboundMessage",
    "SendResult",
    # Errors
    "CheckinError",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "ErrorCode",
    "ErrorResponse",
    "GuestNotFoundError",
    "InvalidSignatureError",
    "MalformedSubmissionError",
]
