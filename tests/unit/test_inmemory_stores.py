"""Unit tests for the in-memory guest and audit stores."""

import datetime as dt

import pytest

from checkin.models.enums import AuditAction, GuestStatus
from checkin.models.events import AuditRecord
from checkin.stores.inmemory import InMemoryAuditStore, InMemoryGuestStore
from factories import make_guest

T0 = dt.datetime(2025, 6, 15, 9, 0, tzinfo=dt.UTC)


def make_record(audit_id: str, guest_id: str = "g1", offset: int = 0) -> AuditRecord:
    return AuditRecord(
        audit_id=audit_id,
        timestamp=T0 + dt.timedelta(minutes=offset),
        guest_id=guest_id,
        action=AuditAction.STATUS_UPDATED,
        performed_by="api",
    )


class TestInMemoryGuestStore:
    """Test suite for InMemoryGuestStore."""

    @pytest.mark.asyncio
    async def test_append_and_find(self, guest_store: InMemoryGuestStore) -> None:
        guest = make_guest()
        await guest_store.append(guest)

        found = await guest_store.find_by_id(guest.id)

        assert found == guest
        assert await guest_store.find_by_id("guest_missing_0") is None

    @pytest.mark.asyncio
    async def test_returns_copies(self, guest_store: InMemoryGuestStore) -> None:
        guest = make_guest()
        await guest_store.append(guest)

        found = await guest_store.find_by_id(guest.id)
        assert found is not None
        found.status = GuestStatus.CANCELLED

        again = await guest_store.find_by_id(guest.id)
        assert again is not None
        assert again.status == GuestStatus.PENDING

    @pytest.mark.asyncio
    async def test_update_coerces_values(self, guest_store: InMemoryGuestStore) -> None:
        guest = make_guest()
        await guest_store.append(guest)

        updated = await guest_store.update(guest.id, {"status": "checked-in", "check_in_time": T0})

        assert updated is not None
        assert updated.status == GuestStatus.CHECKED_IN
        assert updated.check_in_time == T0

    @pytest.mark.asyncio
    async def test_update_unknown(self, guest_store: InMemoryGuestStore) -> None:
        assert await guest_store.update("guest_missing_0", {"status": "cancelled"}) is None

    @pytest.mark.asyncio
    async def test_list_all_oldest_first(self, guest_store: InMemoryGuestStore) -> None:
        newer = make_guest(id="guest_new", created_at=T0 + dt.timedelta(hours=1))
        older = make_guest(id="guest_old", created_at=T0)
        await guest_store.append(newer)
        await guest_store.append(older)

        assert [g.id for g in await guest_store.list_all()] == ["guest_old", "guest_new"]


class TestInMemoryAuditStore:
    """Test suite for InMemoryAuditStore."""

    @pytest.mark.asyncio
    async def test_duplicate_audit_id_rejected(self, audit_store: InMemoryAuditStore) -> None:
        assert await audit_store.append(make_record("a1")) is True
        assert await audit_store.append(make_record("a1")) is False
        assert len(audit_store.records) == 1

    @pytest.mark.asyncio
    async def test_most_recent_first(self, audit_store: InMemoryAuditStore) -> None:
        await audit_store.append(make_record("a1", offset=0))
        await audit_store.append(make_record("a2", offset=5))
        await audit_store.append(make_record("a3", offset=1))

        assert [r.audit_id for r in await audit_store.list_records()] == ["a2", "a3", "a1"]

    @pytest.mark.asyncio
    async def test_same_timestamp_later_insert_first(self, audit_store: InMemoryAuditStore) -> None:
        await audit_store.append(make_record("a1"))
        await audit_store.append(make_record("a2"))

        assert [r.audit_id for r in await audit_store.list_records()] == ["a2", "a1"]

    @pytest.mark.asyncio
    async def test_filter_and_limit(self, audit_store: InMemoryAuditStore) -> None:
        for index in range(5):
            await audit_store.append(make_record(f"g1-{index}", "g1", index))
        await audit_store.append(make_record("g2-0", "g2", 10))

        records = await audit_store.list_records(guest_id="g1", limit=2)

        assert [r.audit_id for r in records] == ["g1-4", "g1-3"]
