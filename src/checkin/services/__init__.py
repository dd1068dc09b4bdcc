"""Services for the visitor check-in pipeline."""

from .dynamodb import DynamoDBService
from .audit import AuditLogger
from .channels import MessageChannel, SlackChannel, TwilioSmsChannel
from .checkin_service import (
    CheckinService,
    SlackInteractionOutcome,
    SmsReplyOutcome,
    StatusChangeOutcome,
    SubmissionOutcome,
)
from .consent import ConsentDecision, ConsentTracker
from .normalizer import NormalizedSubmission, SubmissionNormalizer
from .notifications import NotificationDispatcher
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .state_machine import GuestStatusMachine

__all__ = [
    "DynamoDBService",
    "AuditLogger",
    "CheckinService",
    "ConsentDecision",
    "ConsentTracker",
    "GuestStatusMachine",
    "MessageChannel",
    "NormalizedSubmission",
    "NotificationDispatcher",
    "SlackChannel",
    "SlackInteractionOutcome",
    "SmsReplyOutcome",
    "SSMService",
    "SSMServiceError",
    "StatusChangeOutcome",
    "SubmissionNormalizer",
    "SubmissionOutcome",
    "TwilioSmsChannel",
    "get_ssm_service",
]
