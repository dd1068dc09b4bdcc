"""Unit tests for guest and audit API routes.

Tests for:
- GET /api/guests (+ /today, /checked-in, /stats)
- POST /api/guests
- GET /api/guests/{guest_id}
- PUT /api/guests/{guest_id}/status
- POST /api/guests/{guest_id}/check-in and /check-out
- GET /api/guests/{guest_id}/audit and /api/audit-log
"""

import asyncio
import datetime as dt

from fastapi.testclient import TestClient
from starlette.status import (
    HTTP_200_OK,
    HTTP_201_CREATED,
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_ENTITY,
)

from checkin.models.enums import GuestStatus
from checkin.models.guest import GuestRecord
from checkin.stores.inmemory import InMemoryAuditStore, InMemoryGuestStore
from factories import RecordingChannel, make_guest


class TestCreateGuest:
    """Tests for POST /api/guests."""

    def test_registers_guest(
        self, client: TestClient, sms_channel: RecordingChannel, audit_store: InMemoryAuditStore
    ) -> None:
        response = client.post(
            "/api/guests",
            json={
                "first_name": "Alan",
                "last_name": "Turing",
                "email": "alan@example.com",
                "phone_number": "555-111-2222",
                "host_name": "Joan Clarke",
                "host_phone": "555-333-4444",
                "purpose_of_visit": "Interview",
                "sms_consent": True,
            },
        )

        assert response.status_code == HTTP_201_CREATED
        data = response.json()
        assert data["success"] is True
        assert data["guest"]["full_name"] == "Alan Turing"
        assert data["guest"]["status"] == "pending"
        assert data["guest"]["phone_number"] == "+15551112222"
        assert {n["channel"] for n in data["notifications"]} == {"guest_sms", "host_sms", "slack"}
        assert sorted(sms_channel.targets) == ["+15551112222", "+15553334444"]
        assert audit_store.records[0].ip_address == "testclient"

    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/guests", json={"first_name": "Alan"})

        assert response.status_code == HTTP_422_UNPROCESSABLE_ENTITY
        data = response.json()
        assert data["error_code"] == "ERR_VALIDATION"
        assert ["body", "host_name"] in [d["loc"] for d in data["details"]]

    def test_invalid_email(self, client: TestClient) -> None:
        response = client.post(
            "/api/guests",
            json={
                "first_name": "Alan",
                "last_name": "Turing",
                "email": "not-an-email",
                "host_name": "Joan",
                "purpose_of_visit": "Interview",
            },
        )
        assert response.status_code == HTTP_422_UNPROCESSABLE_ENTITY


class TestGetGuest:
    """Tests for GET /api/guests/{guest_id}."""

    def test_found(self, client: TestClient, stored_guest: GuestRecord) -> None:
        response = client.get(f"/api/guests/{stored_guest.id}")

        assert response.status_code == HTTP_200_OK
        assert response.json()["guest"]["id"] == stored_guest.id

    def test_not_found(self, client: TestClient) -> None:
        response = client.get("/api/guests/guest_missing_0")

        assert response.status_code == HTTP_404_NOT_FOUND
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "ERR_GUEST_NOT_FOUND"
        assert data["details"] == {"guest_id": "guest_missing_0"}


class TestStatusChanges:
    """Tests for status change endpoints."""

    def test_put_status(
        self, client: TestClient, stored_guest: GuestRecord, audit_store: InMemoryAuditStore
    ) -> None:
        response = client.put(
            f"/api/guests/{stored_guest.id}/status",
            json={"status": "with-host", "notes": "Escorted upstairs"},
        )

        assert response.status_code == HTTP_200_OK
        data = response.json()
        assert data["previous_status"] == "pending"
        assert data["new_status"] == "with-host"
        assert data["guest"]["status"] == "with-host"
        record = audit_store.records[-1]
        assert record.performed_by == "api"
        assert record.notes.startswith("Escorted upstairs")

    def test_invalid_status(self, client: TestClient, stored_guest: GuestRecord) -> None:
        response = client.put(f"/api/guests/{stored_guest.id}/status", json={"status": "lost"})
        assert response.status_code == HTTP_422_UNPROCESSABLE_ENTITY

    def test_unknown_guest(self, client: TestClient) -> None:
        response = client.put("/api/guests/guest_missing_0/status", json={"status": "cancelled"})
        assert response.status_code == HTTP_404_NOT_FOUND

    def test_check_in_and_out(self, client: TestClient, stored_guest: GuestRecord) -> None:
        checked_in = client.post(f"/api/guests/{stored_guest.id}/check-in")
        assert checked_in.status_code == HTTP_200_OK
        assert checked_in.json()["new_status"] == "checked-in"
        assert checked_in.json()["guest"]["check_in_time"] is not None

        checked_out = client.post(f"/api/guests/{stored_guest.id}/check-out")
        assert checked_out.status_code == HTTP_200_OK
        data = checked_out.json()
        assert data["previous_status"] == "checked-in"
        assert data["guest"]["check_out_time"] is not None

    def test_failed_channel_still_succeeds(
        self, client: TestClient, stored_guest: GuestRecord, slack_channel: RecordingChannel
    ) -> None:
        slack_channel.success = False
        slack_channel.error = "channel_not_found"

        response = client.post(f"/api/guests/{stored_guest.id}/check-in")

        assert response.status_code == HTTP_200_OK
        slack = [n for n in response.json()["notifications"] if n["channel"] == "slack"]
        assert slack == [
            {"channel": "slack", "target": "C0123456789", "success": False, "error": "channel_not_found"}
        ]


class TestListings:
    """Tests for guest listings and statistics."""

    def test_lists(self, client: TestClient, guest_store: InMemoryGuestStore) -> None:
        today = dt.datetime.now(dt.UTC).date()
        base = dt.datetime.now(dt.UTC)
        guests = [
            make_guest(id="g1", status=GuestStatus.PENDING, created_at=base),
            make_guest(id="g2", status=GuestStatus.CHECKED_IN, created_at=base + dt.timedelta(seconds=1)),
            make_guest(
                id="g3",
                status=GuestStatus.CHECKED_OUT,
                visit_date=today - dt.timedelta(days=30),
                created_at=base + dt.timedelta(seconds=2),
            ),
        ]
        for guest in guests:
            asyncio.run(guest_store.append(guest))

        everyone = client.get("/api/guests").json()
        assert everyone["count"] == 3
        assert [g["id"] for g in everyone["guests"]] == ["g3", "g2", "g1"]

        filtered = client.get("/api/guests", params={"status": "checked-in"}).json()
        assert [g["id"] for g in filtered["guests"]] == ["g2"]

        limited = client.get("/api/guests", params={"limit": 1}).json()
        assert limited["count"] == 1

        todays = client.get("/api/guests/today").json()
        assert sorted(g["id"] for g in todays["guests"]) == ["g1", "g2"]

        in_office = client.get("/api/guests/checked-in").json()
        assert [g["id"] for g in in_office["guests"]] == ["g2"]

        stats = client.get("/api/guests/stats").json()["stats"]
        assert stats["today"]["total"] == 2
        assert stats["today"]["checked_in"] == 1
        assert stats["currently_in_office"] == 1
        assert stats["total"] == 3

    def test_invalid_status_filter(self, client: TestClient) -> None:
        response = client.get("/api/guests", params={"status": "lost"})
        assert response.status_code == HTTP_422_UNPROCESSABLE_ENTITY


class TestAuditEndpoints:
    """Tests for audit trail endpoints."""

    def test_guest_audit(self, client: TestClient, stored_guest: GuestRecord) -> None:
        client.post(f"/api/guests/{stored_guest.id}/check-in")
        client.post(f"/api/guests/{stored_guest.id}/check-out")

        response = client.get(f"/api/guests/{stored_guest.id}/audit")

        assert response.status_code == HTTP_200_OK
        data = response.json()
        assert data["count"] == 2
        assert [r["new_status"] for r in data["records"]] == ["checked-out", "checked-in"]
        assert data["records"][0]["action"] == "STATUS_UPDATED"

    def test_guest_audit_unknown(self, client: TestClient) -> None:
        response = client.get("/api/guests/guest_missing_0/audit")
        assert response.status_code == HTTP_404_NOT_FOUND

    def test_audit_log(self, client: TestClient, stored_guest: GuestRecord) -> None:
        client.post(f"/api/guests/{stored_guest.id}/check-in")

        everything = client.get("/api/audit-log").json()
        filtered = client.get("/api/audit-log", params={"guest_id": "someone-else"}).json()

        assert everything["count"] == 1
        assert filtered["count"] == 0
