"""Audit trail writer.

Audit writes are best effort: a failed or slow store is logged and the
caller carries on. Audit IDs are derived from the record content, so a
replayed write hits the store's duplicate check instead of adding a row.
"""

import asyncio
import datetime as dt
import hashlib
import logging
from typing import Any

from checkin.models.enums import AuditAction, PerformedBy
from checkin.models.events import AuditRecord, TransitionEvent
from checkin.models.guest import GuestRecord
from checkin.models.notification import DispatchResult
from checkin.stores.base import AuditStore

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_TIMEOUT_SECONDS = 5.0


def make_audit_id(
    guest_id: str,
    action: AuditAction,
    timestamp: dt.datetime,
    previous_status: str | None,
    new_status: str | None,
) -> str:
    """Deterministic ID for an audit record."""
    key = "|".join(
        [
            guest_id,
            action.value,
            timestamp.isoformat(),
            previous_status or "",
            new_status or "",
        ]
    )
    return hashlib.sha256(key.encode()).hexdigest()[:32]


def _value(status: Any) -> str | None:
    if status is None:
        return None
    return getattr(status, "value", status)


class AuditLogger:
    """Builds audit records and appends them to an AuditStore."""

    def __init__(
        self,
        store: AuditStore,
        timeout: float = DEFAULT_AUDIT_TIMEOUT_SECONDS,
    ) -> None:
        self.store = store
        self.timeout = timeout
        self._pending: set[asyncio.Task[AuditRecord | None]] = set()

    async def record(
        self,
        guest: GuestRecord | None,
        action: AuditAction,
        *,
        guest_id: str | None = None,
        guest_name: str | None = None,
        previous_status: Any = None,
        new_status: Any = None,
        performed_by: PerformedBy | str = PerformedBy.API,
        notes: str = "",
        ip_address: str | None = None,
        timestamp: dt.datetime | None = None,
    ) -> AuditRecord | None:
        """Append one audit record.

        Args:
            guest: Subject guest; its ID and display name are snapshotted
            action: Audited action
            guest_id: Subject ID when no guest record is available
            guest_name: Overrides the snapshotted name
            previous_status: Status (or consent state) before the action
            new_status: Status (or consent state) after the action
            performed_by: Actor
            notes: Free text
            ip_address: Caller address if known
            timestamp: Event time; defaults to now

        Returns:
            The stored record, or None if it could not be written
        """
        subject_id = guest.id if guest else (guest_id or "unknown")
        name = guest_name if guest_name is not None else (guest.display_name if guest else "")
        ts = timestamp or dt.datetime.now(dt.UTC)
        prev, new = _value(previous_status), _value(new_status)

        record = AuditRecord(
            audit_id=make_audit_id(subject_id, action, ts, prev, new),
            timestamp=ts,
            guest_id=subject_id,
            guest_name=name,
            action=action,
            previous_status=prev,
            new_status=new,
            performed_by=_value(performed_by) or PerformedBy.API.value,
            notes=notes,
            ip_address=ip_address,
        )
        return await self.write(record)

    async def record_transition(
        self,
        event: TransitionEvent,
        guest: GuestRecord,
        *,
        dispatch: DispatchResult | None = None,
        ip_address: str | None = None,
    ) -> AuditRecord | None:
        """Append the STATUS_UPDATED record for a transition.

        The caller's notes and the dispatch summary share the notes field.
        """
        parts = [event.notes] if event.notes else []
        if event.is_noop:
            parts.append("status unchanged")
        if dispatch is not None:
            parts.append(dispatch.summary())
        return await self.record(
            guest,
            AuditAction.STATUS_UPDATED,
            previous_status=event.previous_status,
            new_status=event.new_status,
            performed_by=event.performed_by,
            notes="; ".join(parts),
            ip_address=ip_address,
            timestamp=event.timestamp,
        )

    async def write(self, record: AuditRecord) -> AuditRecord | None:
        """Append a prepared record, swallowing store failures."""
        try:
            stored = await asyncio.wait_for(self.store.append(record), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(
                "Audit write timed out after %.1fs: %s for %s",
                self.timeout,
                record.action.value,
                record.guest_id,
            )
            return None
        except Exception:
            logger.exception(
                "Audit write failed: %s for %s", record.action.value, record.guest_id
            )
            return None

        if not stored:
            logger.info("Duplicate audit record %s ignored", record.audit_id)
        return record

    def schedule(self, *args: Any, **kwargs: Any) -> asyncio.Task[AuditRecord | None]:
        """Run ``record(...)`` as a tracked background task."""
        task = asyncio.create_task(self.record(*args, **kwargs))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled write to finish."""
        if not self._pending:
            return
        logger.info("Draining %d pending audit writes", len(self._pending))
        await asyncio.gather(*list(self._pending), return_exceptions=True)
