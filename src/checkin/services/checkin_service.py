"""Check-in orchestration.

CheckinService wires the pipeline together:

    payload -> normalize -> consent -> persist -> dispatch -> audit

Persistence always completes before any notification goes out, and audit
records are written after dispatch so they can carry its outcome. Only
MalformedSubmissionError and GuestNotFoundError reach the caller; channel and
audit failures are logged and reported in the returned outcome.
"""

import asyncio
import datetime as dt
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from checkin.models.enums import AuditAction, GuestStatus, PerformedBy
from checkin.models.errors import GuestNotFoundError, MalformedSubmissionError
from checkin.models.events import AuditRecord, TransitionEvent
from checkin.models.guest import (
    DailyStatusCounts,
    GuestCreate,
    GuestRecord,
    GuestStats,
)
from checkin.models.notification import DispatchResult
from checkin.services.audit import AuditLogger
from checkin.services.consent import ConsentDecision, ConsentTracker
from checkin.services.normalizer import (
    SubmissionNormalizer,
    format_phone_number,
    generate_guest_id,
)
from checkin.services.notifications import NotificationDispatcher
from checkin.services.state_machine import DEFAULT_STORE_TIMEOUT_SECONDS, GuestStatusMachine
from checkin.stores.base import AuditStore, GuestStore
from checkin.utils.logging import (
    get_correlation_id,
    get_logger,
    log_dispatch_result,
    log_guest_operation,
)

logger = get_logger(__name__)

IN_OFFICE_STATUSES = (GuestStatus.CHECKED_IN, GuestStatus.WITH_HOST)

# Canned replies to inbound SMS, keyed by normalized keyword
SMS_REPLIES: dict[str, str] = {
    "help": (
        "Guest Check-in System Help:\n\n"
        "- Reply with your name to check your visit status\n"
        "- Reply STOP to opt out of messages\n"
        "- For immediate assistance, call our main number\n\n"
        "Office Hours: Monday-Friday 9AM-5PM"
    ),
    "stop": "You have been unsubscribed from check-in notifications. Reply START to resubscribe.",
    "start": "You have been resubscribed to check-in notifications. Welcome back!",
    "default": (
        "Thank you for your message. A team member will respond shortly. "
        "For immediate assistance, please call our main number or visit the reception desk.\n\n"
        "Reply HELP for more options."
    ),
}

_SMS_KEYWORDS = {
    "help": "help",
    "stop": "stop",
    "unsubscribe": "stop",
    "start": "start",
    "subscribe": "start",
}

SLACK_ACTION_MESSAGES: dict[str, str] = {
    "acknowledge": "{user} acknowledged guest arrival",
    "call": "{user} is calling the guest",
    "update": "{user} is updating guest status",
}


@dataclass
class SubmissionOutcome:
    """Result of registering a guest."""

    guest: GuestRecord
    dispatch: DispatchResult
    consent: ConsentDecision


@dataclass
class StatusChangeOutcome:
    """Result of a status transition."""

    event: TransitionEvent
    guest: GuestRecord
    dispatch: DispatchResult


@dataclass
class SmsReplyOutcome:
    """Result of handling an inbound SMS."""

    keyword: str
    reply: str
    guest_id: str | None
    delivered: bool


@dataclass
class SlackInteractionOutcome:
    """Result of handling a team-chat button press."""

    action: str
    guest_id: str
    user: str
    message: str


class CheckinService:
    """Entry point for every guest operation."""

    def __init__(
        self,
        guests: GuestStore,
        audit_store: AuditStore,
        dispatcher: NotificationDispatcher,
        normalizer: SubmissionNormalizer | None = None,
        store_timeout: float = DEFAULT_STORE_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize service.

        Args:
            guests: Guest record store
            audit_store: Audit trail store
            dispatcher: Notification fan-out
            normalizer: Submission normalizer (default field table if omitted)
            store_timeout: Per-call timeout for store operations, in seconds
        """
        self.guests = guests
        self.dispatcher = dispatcher
        self.normalizer = normalizer or SubmissionNormalizer()
        self.store_timeout = store_timeout
        self.audit = AuditLogger(audit_store, timeout=store_timeout)
        self.consent = ConsentTracker(self.audit)
        self.machine = GuestStatusMachine(guests, timeout=store_timeout)

    # === Registration ===

    async def submit_form(
        self,
        payload: Any,
        correlation_id: str | None = None,
        ip_address: str | None = None,
    ) -> SubmissionOutcome:
        """Register a guest from a form-provider webhook payload.

        Raises:
            MalformedSubmissionError: If the payload is not a recognizable submission
        """
        submission = self.normalizer.normalize(payload, correlation_id or get_correlation_id())
        guest, decision = self.consent.apply(submission)

        await self._persist(guest)
        dispatch = await self.dispatcher.dispatch_submission(guest)
        log_dispatch_result(logger, guest.id, "submission", dispatch)

        await self.audit.record(
            guest,
            AuditAction.FORM_SUBMITTED,
            new_status=GuestStatus.PENDING,
            performed_by=PerformedBy.FORM_SUBMISSION,
            notes=f"Guest submitted check-in form; {dispatch.summary()}",
            ip_address=ip_address,
        )
        await self.consent.record(guest, decision, ip_address=ip_address)

        log_guest_operation(
            logger,
            "submit_form",
            guest_id=guest.id,
            guest_name=guest.display_name,
            status=guest.status.value,
            sms_consent=decision.given,
        )
        return SubmissionOutcome(guest=guest, dispatch=dispatch, consent=decision)

    async def create_guest(
        self,
        data: GuestCreate,
        ip_address: str | None = None,
        performed_by: PerformedBy = PerformedBy.RECEPTIONIST,
    ) -> SubmissionOutcome:
        """Register a guest entered manually at reception."""
        now = dt.datetime.now(dt.UTC)
        full_name = f"{data.first_name} {data.last_name}".strip()
        guest = GuestRecord(
            id=generate_guest_id(),
            full_name=full_name,
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            phone_number=format_phone_number(data.phone_number),
            company=data.company,
            title=data.title,
            host_name=data.host_name,
            host_email=data.host_email,
            host_phone=format_phone_number(data.host_phone),
            purpose_of_visit=data.purpose_of_visit,
            expected_duration=data.expected_duration,
            special_requirements=data.special_requirements,
            visit_date=data.visit_date or now.date(),
            notification_preferences=data.notification_preferences,
            created_at=now,
            updated_at=now,
        )
        decision = ConsentDecision(given=data.sms_consent, timestamp=now, source_field="sms_consent")
        guest = self.consent.stamp(guest, decision)

        await self._persist(guest)
        dispatch = await self.dispatcher.dispatch_submission(guest, manual=True)
        log_dispatch_result(logger, guest.id, "manual_entry", dispatch)

        await self.audit.record(
            guest,
            AuditAction.GUEST_CREATED,
            new_status=GuestStatus.PENDING,
            performed_by=performed_by,
            notes=f"Guest registered at reception; {dispatch.summary()}",
            ip_address=ip_address,
        )
        await self.consent.record(
            guest, decision, performed_by=performed_by, ip_address=ip_address
        )

        log_guest_operation(
            logger, "create_guest", guest_id=guest.id, guest_name=guest.display_name
        )
        return SubmissionOutcome(guest=guest, dispatch=dispatch, consent=decision)

    # === Lifecycle ===

    async def update_status(
        self,
        guest_id: str,
        status: GuestStatus,
        notes: str = "",
        performed_by: PerformedBy = PerformedBy.API,
        ip_address: str | None = None,
    ) -> StatusChangeOutcome:
        """Transition a guest, notify and audit.

        Raises:
            GuestNotFoundError: If the guest does not exist
        """
        event, guest = await self.machine.apply(guest_id, status, notes, performed_by)
        dispatch = await self.dispatcher.dispatch_transition(event, guest)
        if dispatch.attempted:
            log_dispatch_result(logger, guest_id, event.new_status.value, dispatch)

        await self.audit.record_transition(
            event, guest, dispatch=dispatch, ip_address=ip_address
        )
        log_guest_operation(
            logger,
            "update_status",
            guest_id=guest_id,
            status=event.new_status.value,
            previous_status=event.previous_status.value,
        )
        return StatusChangeOutcome(event=event, guest=guest, dispatch=dispatch)

    async def check_in(
        self,
        guest_id: str,
        notes: str = "",
        performed_by: PerformedBy = PerformedBy.RECEPTIONIST,
        ip_address: str | None = None,
    ) -> StatusChangeOutcome:
        """Shortcut for a transition to ``checked-in``."""
        return await self.update_status(
            guest_id, GuestStatus.CHECKED_IN, notes or "Guest checked in", performed_by, ip_address
        )

    async def check_out(
        self,
        guest_id: str,
        notes: str = "",
        performed_by: PerformedBy = PerformedBy.RECEPTIONIST,
        ip_address: str | None = None,
    ) -> StatusChangeOutcome:
        """Shortcut for a transition to ``checked-out``."""
        return await self.update_status(
            guest_id, GuestStatus.CHECKED_OUT, notes or "Guest checked out", performed_by, ip_address
        )

    # === Queries ===

    async def get_guest(self, guest_id: str) -> GuestRecord:
        """Get a guest by ID.

        Raises:
            GuestNotFoundError: If the guest does not exist
        """
        guest = await asyncio.wait_for(self.guests.find_by_id(guest_id), self.store_timeout)
        if guest is None:
            raise GuestNotFoundError(guest_id)
        return guest

    async def list_guests(
        self,
        status: GuestStatus | None = None,
        limit: int | None = None,
    ) -> list[GuestRecord]:
        """List guests, most recently created first."""
        guests = await asyncio.wait_for(self.guests.list_all(), self.store_timeout)
        if status is not None:
            guests = [g for g in guests if g.status == status]
        guests.sort(key=lambda g: g.created_at, reverse=True)
        return guests[:limit] if limit else guests

    async def todays_guests(self, today: dt.date | None = None) -> list[GuestRecord]:
        """Guests whose visit date is today (UTC)."""
        today = today or dt.datetime.now(dt.UTC).date()
        return [g for g in await self.list_guests() if g.visit_date == today]

    async def checked_in_guests(self) -> list[GuestRecord]:
        """Guests currently in the office."""
        return [g for g in await self.list_guests() if g.status in IN_OFFICE_STATUSES]

    async def guest_stats(self, today: dt.date | None = None) -> GuestStats:
        """Dashboard counters."""
        today = today or dt.datetime.now(dt.UTC).date()
        week_ago = today - dt.timedelta(days=7)
        guests = await self.list_guests()

        todays = [g for g in guests if g.visit_date == today]
        counts = DailyStatusCounts(total=len(todays))
        for guest in todays:
            field = guest.status.value.replace("-", "_")
            setattr(counts, field, getattr(counts, field) + 1)

        return GuestStats(
            today=counts,
            currently_in_office=sum(1 for g in guests if g.status in IN_OFFICE_STATUSES),
            this_week=sum(1 for g in guests if week_ago <= g.visit_date <= today),
            total=len(guests),
        )

    async def audit_log(
        self,
        guest_id: str | None = None,
        limit: int = 100,
    ) -> list[AuditRecord]:
        """Audit records, most recent first."""
        return await asyncio.wait_for(
            self.audit.store.list_records(guest_id=guest_id, limit=limit),
            self.store_timeout,
        )

    # === Inbound channel events ===

    async def handle_incoming_sms(
        self,
        from_number: str,
        body: str,
        message_sid: str | None = None,
        ip_address: str | None = None,
    ) -> SmsReplyOutcome:
        """Reply to an inbound SMS and audit it.

        STOP/START are acknowledged but do not change the consent recorded at
        registration.
        """
        text = (body or "").strip()
        keyword = _SMS_KEYWORDS.get(text.lower(), "default")
        reply = SMS_REPLIES[keyword]

        phone = format_phone_number(from_number)
        guest = await self._find_by_phone(phone)

        delivered = False
        if phone:
            result = await self.dispatcher.send_sms(phone, reply)
            delivered = result.success

        self.audit.schedule(
            guest,
            AuditAction.SMS_RECEIVED,
            guest_id="unknown",
            guest_name=None if guest else "SMS Sender",
            performed_by=PerformedBy.AUTOMATED_SYSTEM,
            notes=f"Incoming SMS ({message_sid or 'no sid'}) from {phone or from_number}: {text}",
            ip_address=ip_address,
        )
        logger.info("Inbound SMS from %s handled as %s", phone, keyword)
        return SmsReplyOutcome(
            keyword=keyword,
            reply=reply,
            guest_id=guest.id if guest else None,
            delivered=delivered,
        )

    async def handle_slack_interaction(
        self,
        payload: Mapping[str, Any] | str,
        ip_address: str | None = None,
    ) -> SlackInteractionOutcome:
        """Audit a button press on an arrival notice.

        Button values look like ``<action>_<guest id>``.

        Raises:
            MalformedSubmissionError: If the payload carries no action
        """
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                raise MalformedSubmissionError(details={"reason": "payload is not JSON"}) from e
        actions = payload.get("actions") if isinstance(payload, Mapping) else None
        if not isinstance(actions, list) or not actions or not isinstance(actions[0], Mapping):
            raise MalformedSubmissionError(details={"reason": "no interaction action"})

        action, _, guest_id = str(actions[0].get("value", "")).partition("_")
        user_info = payload.get("user") or {}
        user = str(user_info.get("name") or user_info.get("username") or "unknown")
        if action in SLACK_ACTION_MESSAGES:
            message = SLACK_ACTION_MESSAGES[action].format(user=user)
        else:
            message = f"{user} performed action: {action}"

        guest = None
        if guest_id:
            guest = await asyncio.wait_for(self.guests.find_by_id(guest_id), self.store_timeout)
        self.audit.schedule(
            guest,
            AuditAction.SLACK_INTERACTION,
            guest_id=guest_id or "unknown",
            performed_by=user,
            notes=message,
            ip_address=ip_address,
        )
        logger.info("Slack interaction %s on %s by %s", action, guest_id, user)
        return SlackInteractionOutcome(action=action, guest_id=guest_id, user=user, message=message)

    # === Internals ===

    async def _persist(self, guest: GuestRecord) -> None:
        await asyncio.wait_for(self.guests.append(guest), self.store_timeout)

    async def _find_by_phone(self, phone: str | None) -> GuestRecord | None:
        if not phone:
            return None
        matches = [g for g in await self.list_guests() if g.phone_number == phone]
        return matches[0] if matches else None
