"""DynamoDB-backed guest and audit stores.

boto3 is synchronous, so every table call runs in a worker thread to keep
the event loop free.

Tables (prefixed by DynamoDBService):
- ``guests``: hash key ``guest_id``
- ``audit-log``: hash key ``guest_id``, range key ``sort_key``
  (``<fixed-width UTC timestamp>#<audit_id>``)
"""

import asyncio
import datetime as dt
import time
from typing import Any

from boto3.dynamodb.conditions import Key
from pydantic_core import to_jsonable_python

from checkin.models.events import AuditRecord
from checkin.models.guest import GuestRecord
from checkin.services.dynamodb import DynamoDBService
from checkin.stores.base import AuditStore, GuestStore

GUESTS_TABLE = "guests"
AUDIT_TABLE = "audit-log"


def _guest_to_item(record: GuestRecord) -> dict[str, Any]:
    item = record.model_dump(mode="json", exclude_none=True)
    item["guest_id"] = item.pop("id")
    return item


def _item_to_guest(item: dict[str, Any]) -> GuestRecord:
    data = dict(item)
    data["id"] = data.pop("guest_id")
    return GuestRecord.model_validate(data)


class DynamoGuestStore(GuestStore):
    """GuestStore over the ``guests`` DynamoDB table."""

    def __init__(self, db: DynamoDBService) -> None:
        self._db = db

    async def append(self, record: GuestRecord) -> None:
        await asyncio.to_thread(self._db.put_item, GUESTS_TABLE, _guest_to_item(record))

    async def find_by_id(self, guest_id: str) -> GuestRecord | None:
        item = await asyncio.to_thread(self._db.get_item, GUESTS_TABLE, {"guest_id": guest_id})
        return _item_to_guest(item) if item else None

    async def list_all(self) -> list[GuestRecord]:
        items = await asyncio.to_thread(self._db.scan, GUESTS_TABLE)
        guests = [_item_to_guest(item) for item in items]
        guests.sort(key=lambda g: g.created_at)
        return guests

    async def update(self, guest_id: str, fields: dict[str, Any]) -> GuestRecord | None:
        serialized = {name: to_jsonable_python(value) for name, value in fields.items()}
        attrs = await asyncio.to_thread(
            self._db.update_fields,
            GUESTS_TABLE,
            {"guest_id": guest_id},
            serialized,
        )
        return _item_to_guest(attrs) if attrs else None


class DynamoAuditStore(AuditStore):
    """AuditStore over the ``audit-log`` DynamoDB table.

    Appends are conditional on a new sort key, so replaying the same
    record (same timestamp and audit_id) is a no-op.
    """

    def __init__(self, db: DynamoDBService) -> None:
        self._db = db

    async def append(self, record: AuditRecord) -> bool:
        item = record.model_dump(mode="json", exclude_none=True)
        item["sort_key"] = f"{sort_stamp(record.timestamp)}#{record.audit_id}"
        item["inserted_ns"] = time.time_ns()
        return await asyncio.to_thread(
            self._db.put_item,
            AUDIT_TABLE,
            item,
            "attribute_not_exists(sort_key)",
        )

    async def list_records(
        self,
        guest_id: str | None = None,
        limit: int = 100,
    ) -> list[AuditRecord]:
        if guest_id is None:
            items = await asyncio.to_thread(self._db.scan, AUDIT_TABLE)
        else:
            items = await asyncio.to_thread(
                self._db.query,
                AUDIT_TABLE,
                Key("guest_id").eq(guest_id),
            )
        items.sort(
            key=lambda i: (dt.datetime.fromisoformat(i["timestamp"]), int(i.get("inserted_ns", 0))),
            reverse=True,
        )
        return [_item_to_audit(item) for item in items[:limit]]


def sort_stamp(timestamp: dt.datetime) -> str:
    """UTC timestamp with microseconds always present, so keys sort as text."""
    return timestamp.astimezone(dt.UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _item_to_audit(item: dict[str, Any]) -> AuditRecord:
    data = {k: v for k, v in item.items() if k not in ("sort_key", "inserted_ns")}
    return AuditRecord.model_validate(data)
