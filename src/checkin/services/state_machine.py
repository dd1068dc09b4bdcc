"""Guest status state machine.

Every status change goes through ``GuestStatusMachine``. The source state is
not validated: reception staff may jump between any two statuses. What the
machine does guarantee:

- one TransitionEvent per call, capturing the prior status
- ``checked-in`` stamps ``check_in_time`` once
- ``checked-out`` stamps ``check_out_time``; if the guest never checked in,
  ``check_in_time`` is backfilled with the same timestamp
- leaving ``checked-out`` clears ``check_out_time``
- a same-status request only bumps ``updated_at``

Calls for the same guest are serialized within the process.
"""

import asyncio
import datetime as dt
import logging
import weakref
from typing import Any

from checkin.models.enums import GuestStatus, PerformedBy
from checkin.models.errors import GuestNotFoundError
from checkin.models.events import TransitionEvent
from checkin.models.guest import GuestRecord
from checkin.stores.base import GuestStore

logger = logging.getLogger(__name__)

DEFAULT_STORE_TIMEOUT_SECONDS = 5.0


def transition_fields(
    guest: GuestRecord,
    new_status: GuestStatus,
    now: dt.datetime,
) -> dict[str, Any]:
    """Compute the field updates for moving ``guest`` to ``new_status``."""
    fields: dict[str, Any] = {"updated_at": now}
    if guest.status == new_status:
        return fields

    fields["status"] = new_status
    if new_status == GuestStatus.CHECKED_IN and guest.check_in_time is None:
        fields["check_in_time"] = now
    elif new_status == GuestStatus.CHECKED_OUT:
        fields["check_out_time"] = now
        if guest.check_in_time is None:
            fields["check_in_time"] = now

    if guest.status == GuestStatus.CHECKED_OUT and new_status != GuestStatus.CHECKED_OUT:
        fields["check_out_time"] = None
    return fields


class GuestStatusMachine:
    """Applies status transitions to stored guests."""

    def __init__(
        self,
        store: GuestStore,
        timeout: float = DEFAULT_STORE_TIMEOUT_SECONDS,
    ) -> None:
        self.store = store
        self.timeout = timeout
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, guest_id: str) -> asyncio.Lock:
        lock = self._locks.get(guest_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[guest_id] = lock
        return lock

    async def transition(
        self,
        guest_id: str,
        new_status: GuestStatus,
        notes: str = "",
        performed_by: PerformedBy = PerformedBy.API,
    ) -> TransitionEvent:
        """Move a guest to ``new_status``.

        Raises:
            GuestNotFoundError: If the guest does not exist
        """
        event, _ = await self.apply(guest_id, new_status, notes, performed_by)
        return event

    async def apply(
        self,
        guest_id: str,
        new_status: GuestStatus,
        notes: str = "",
        performed_by: PerformedBy = PerformedBy.API,
    ) -> tuple[TransitionEvent, GuestRecord]:
        """Move a guest to ``new_status`` and return the updated record too.

        Args:
            guest_id: Guest to transition
            new_status: Target status
            notes: Free-text reason, carried to the audit record
            performed_by: Actor

        Returns:
            (TransitionEvent, updated GuestRecord)

        Raises:
            GuestNotFoundError: If the guest does not exist
        """
        new_status = GuestStatus(new_status)
        performed_by = PerformedBy(performed_by)
        lock = self._lock_for(guest_id)
        async with lock:
            guest = await asyncio.wait_for(self.store.find_by_id(guest_id), self.timeout)
            if guest is None:
                raise GuestNotFoundError(guest_id)

            now = dt.datetime.now(dt.UTC)
            fields = transition_fields(guest, new_status, now)
            updated = await asyncio.wait_for(
                self.store.update(guest_id, fields), self.timeout
            )
            if updated is None:
                raise GuestNotFoundError(guest_id)

        event = TransitionEvent(
            guest_id=guest_id,
            previous_status=guest.status,
            new_status=new_status,
            performed_by=performed_by,
            notes=notes,
            timestamp=now,
        )
        if event.is_noop:
            logger.info("Guest %s already %s; timestamp refreshed", guest_id, new_status.value)
        else:
            logger.info(
                "Guest %s: %s -> %s (%s)",
                guest_id,
                guest.status.value,
                new_status.value,
                performed_by.value,
            )
        return event, updated
