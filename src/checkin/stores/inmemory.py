"""In-memory implementations of the guest and audit stores."""

from typing import Any

from checkin.models.events import AuditRecord
from checkin.models.guest import GuestRecord
from checkin.stores.base import AuditStore, GuestStore


class InMemoryGuestStore(GuestStore):
    """Dict-backed GuestStore for tests and local development."""

    def __init__(self) -> None:
        self._guests: dict[str, GuestRecord] = {}

    async def append(self, record: GuestRecord) -> None:
        self._guests[record.id] = record.model_copy(deep=True)

    async def find_by_id(self, guest_id: str) -> GuestRecord | None:
        guest = self._guests.get(guest_id)
        return guest.model_copy(deep=True) if guest else None

    async def list_all(self) -> list[GuestRecord]:
        guests = sorted(self._guests.values(), key=lambda g: g.created_at)
        return [guest.model_copy(deep=True) for guest in guests]

    async def update(self, guest_id: str, fields: dict[str, Any]) -> GuestRecord | None:
        current = self._guests.get(guest_id)
        if current is None:
            return None
        # Round-trip through validation so enum/str values are coerced
        updated = GuestRecord.model_validate({**current.model_dump(), **fields})
        self._guests[guest_id] = updated
        return updated.model_copy(deep=True)

    @property
    def guests(self) -> dict[str, GuestRecord]:
        """Stored guests keyed by ID."""
        return dict(self._guests)


class InMemoryAuditStore(AuditStore):
    """List-backed AuditStore; insertion order is the tie-breaker."""

    def __init__(self) -> None:
        self._records: list[AuditRecord] = []
        self._ids: set[str] = set()

    async def append(self, record: AuditRecord) -> bool:
        if record.audit_id in self._ids:
            return False
        self._ids.add(record.audit_id)
        self._records.append(record)
        return True

    async def list_records(
        self,
        guest_id: str | None = None,
        limit: int = 100,
    ) -> list[AuditRecord]:
        indexed = [
            (index, record)
            for index, record in enumerate(self._records)
            if guest_id is None or record.guest_id == guest_id
        ]
        indexed.sort(key=lambda pair: (pair[1].timestamp, pair[0]), reverse=True)
        return [record for _, record in indexed[:limit]]

    @property
    def records(self) -> list[AuditRecord]:
        """All records in insertion order."""
        return list(self._records)
