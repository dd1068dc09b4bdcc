"""Storage boundary for guest records and the audit trail.

The core only needs get/put/append semantics; any backing store that
implements these two interfaces can be plugged in.
"""

from abc import ABC, abstractmethod
from typing import Any

from checkin.models.events import AuditRecord
from checkin.models.guest import GuestRecord


class GuestStore(ABC):
    """Collection of guest records keyed by guest ID."""

    @abstractmethod
    async def append(self, record: GuestRecord) -> None:
        """Store a new guest record."""

    @abstractmethod
    async def find_by_id(self, guest_id: str) -> GuestRecord | None:
        """Get a guest by ID, or None if unknown."""

    @abstractmethod
    async def list_all(self) -> list[GuestRecord]:
        """Get every stored guest, oldest first."""

    @abstractmethod
    async def update(self, guest_id: str, fields: dict[str, Any]) -> GuestRecord | None:
        """Apply a partial update.

        Args:
            guest_id: Guest to update
            fields: GuestRecord field name -> new value

        Returns:
            The updated record, or None if the guest does not exist
        """


class AuditStore(ABC):
    """Append-only collection of audit records."""

    @abstractmethod
    async def append(self, record: AuditRecord) -> bool:
        """Append a record.

        Returns:
            False if a record with the same audit_id already exists
        """

    @abstractmethod
    async def list_records(
        self,
        guest_id: str | None = None,
        limit: int = 100,
    ) -> list[AuditRecord]:
        """List records, most recent first.

        Args:
            guest_id: Restrict to one guest
            limit: Maximum number of records
        """
