"""Guest and audit store implementations."""

from .base import AuditStore, GuestStore
from .dynamodb import DynamoAuditStore, DynamoGuestStore
from .inmemory import InMemoryAuditStore, InMemoryGuestStore

__all__ = [
    "AuditStore",
    "GuestStore",
    "DynamoAuditStore",
    "DynamoGuestStore",
    "InMemoryAuditStore",
    "InMemoryGuestStore",
]
