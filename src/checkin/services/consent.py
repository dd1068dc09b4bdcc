"""SMS consent determination and recording.

Consent is decided exactly once, when the guest record is created. Later
SMS replies (STOP/START) are audited but never rewrite the recorded value.
"""

import datetime as dt
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from checkin.models.enums import AuditAction, ConsentStatus, PerformedBy
from checkin.models.events import AuditRecord
from checkin.models.guest import GuestRecord
from checkin.services.audit import AuditLogger
from checkin.services.field_mapping import CONSENT_KEYWORDS
from checkin.services.normalizer import NormalizedSubmission

logger = logging.getLogger(__name__)

# Checked in order; the first non-empty value wins.
CONSENT_CANDIDATES: tuple[str, ...] = (
    "sms_consent",
    "smsConsent",
    "q10_smsConsent",
    "q11_smsConsent",
    "q12_smsConsent",
    "smsNotifications",
    "textConsent",
    "notificationPreferences.sms",
)

_TRUTHY = frozenset({"true", "yes", "y", "1", "on", "checked"})


@dataclass(frozen=True)
class ConsentDecision:
    """Consent outcome for one guest."""

    given: bool
    timestamp: dt.datetime
    source_field: str | None = None

    @property
    def status(self) -> ConsentStatus:
        return ConsentStatus.CONSENTED if self.given else ConsentStatus.DECLINED


def coerce_consent(value: Any) -> bool:
    """Interpret a form answer as an opt-in flag."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (list, tuple)):
        return any(coerce_consent(item) for item in value)
    text = str(value).strip().lower()
    if text in _TRUTHY:
        return True
    return any(keyword in text for keyword in CONSENT_KEYWORDS)


def _lookup(fields: Mapping[str, Any], path: str) -> Any:
    if path in fields:
        return fields[path]
    head, _, rest = path.partition(".")
    if rest and isinstance(fields.get(head), Mapping):
        return _lookup(fields[head], rest)
    return None


class ConsentTracker:
    """Determines and audits SMS consent."""

    def __init__(
        self,
        audit: AuditLogger,
        candidates: tuple[str, ...] = CONSENT_CANDIDATES,
    ) -> None:
        self.audit = audit
        self.candidates = candidates

    def decide(self, fields: Mapping[str, Any]) -> ConsentDecision:
        """Pick the first non-empty candidate field. No hit means declined."""
        now = dt.datetime.now(dt.UTC)
        for candidate in self.candidates:
            value = _lookup(fields, candidate)
            if value is None or value == "" or value == []:
                continue
            return ConsentDecision(
                given=coerce_consent(value), timestamp=now, source_field=candidate
            )
        return ConsentDecision(given=False, timestamp=now)

    def apply(self, submission: NormalizedSubmission) -> tuple[GuestRecord, ConsentDecision]:
        """Stamp consent on the submission's guest draft.

        Returns:
            (guest with sms_consent_given and sms_consent_timestamp set, decision)
        """
        decision = self.decide(submission.fields)
        guest = self.stamp(submission.guest, decision)
        logger.debug(
            "Consent for %s: %s (field=%s)",
            guest.id,
            decision.status.value,
            decision.source_field,
        )
        return guest, decision

    @staticmethod
    def stamp(guest: GuestRecord, decision: ConsentDecision) -> GuestRecord:
        """Set consent flag and timestamp together on a copy of the guest."""
        return guest.model_copy(
            update={
                "sms_consent_given": decision.given,
                "sms_consent_timestamp": decision.timestamp,
            }
        )

    async def record(
        self,
        guest: GuestRecord,
        decision: ConsentDecision,
        *,
        performed_by: PerformedBy = PerformedBy.FORM_SUBMISSION,
        ip_address: str | None = None,
    ) -> AuditRecord | None:
        """Append the SMS_CONSENT_RECORDED audit record.

        Written whether or not the guest has a phone number.
        """
        note = "SMS consent given" if decision.given else "SMS consent not given"
        if not guest.phone_number:
            note += " (no phone number on file)"
        return await self.audit.record(
            guest,
            AuditAction.SMS_CONSENT_RECORDED,
            new_status=decision.status.value,
            performed_by=performed_by,
            notes=note,
            ip_address=ip_address,
            timestamp=decision.timestamp,
        )
