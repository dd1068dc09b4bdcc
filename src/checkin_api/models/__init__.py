"""API-specific request/response models.

Modules:
- common: Validation error wrappers
- guests: Guest, audit and webhook response models
"""

from checkin_api.models.common import ValidationErrorDetail, ValidationErrorResponse
from checkin_api.models.guests import (
    AuditLogResponse,
    GuestCreatedResponse,
    GuestListResponse,
    GuestResponse,
    GuestStatsResponse,
    StatusChangeResponse,
    WebhookResponse,
)

__all__ = [
    "AuditLogResponse",
    "GuestCreatedResponse",
    "GuestListResponse",
    "GuestResponse",
    "GuestStatsResponse",
    "StatusChangeResponse",
    "ValidationErrorDetail",
    "ValidationErrorResponse",
    "WebhookResponse",
]
