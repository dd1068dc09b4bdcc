"""Submission normalizer for form-provider webhooks.

Turns the heterogeneous payloads a form provider can deliver into one
canonical guest draft. Recognized shapes:

1. Stable field-ID answers: ``{"16": ..., "152": ...}``, raw keys that
   carry the ID (``q16_name``) or an ``answers`` object keyed by ID.
2. Labelled answers: each answer carries a question ``text`` and internal
   ``name`` that are matched against the heuristic table.
3. Raw key/value form: ``rawRequest`` as a URL-encoded string or a flat
   mapping of ``q<id>_<name>`` keys.
4. Structured guest object: guest-shaped keys (``fullName``, ``hostName``).

Every logical field is resolved by stable ID first, then by the heuristic
matcher table.
"""

import datetime as dt
import json
import logging
import os
import re
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl

from checkin.models.errors import MalformedSubmissionError
from checkin.models.guest import GuestRecord, NotificationPreferences
from checkin.services.field_mapping import (
    CONSENT_KEYWORDS,
    DEFAULT_FIELD_IDS,
    FIELD_MATCHERS,
)

logger = logging.getLogger(__name__)

FIELD_IDS_ENV = "CHECKIN_FORM_FIELD_IDS"

_RAW_KEY = re.compile(r"^q(\d+)_(.+)$")
_SUBKEY = re.compile(r"^(.+?)\[([^\]]*)\]$")
_DIGITS = re.compile(r"\D")

# Envelope keys that never carry guest data
METADATA_KEYS = frozenset(
    {
        "id",
        "submissionID",
        "submission_id",
        "submissionId",
        "formID",
        "form_id",
        "formId",
        "formTitle",
        "ip",
        "type",
        "pretty",
        "username",
        "event_id",
        "slug",
        "created_at",
        "updated_at",
        "status",
        "rawRequest",
        "answers",
        "submission",
    }
)

_TEXT_FIELDS = (
    "email",
    "company",
    "title",
    "host_name",
    "host_email",
    "purpose_of_visit",
    "expected_duration",
    "special_requirements",
)


@dataclass
class Answer:
    """One answer from a submission, in provider-neutral form."""

    value: Any
    field_id: str | None = None
    name: str = ""
    text: str = ""


@dataclass
class NormalizedSubmission:
    """Result of normalization.

    Attributes:
        guest: Guest draft in status ``pending``; consent not yet applied
        fields: Raw answer values keyed by every name they arrived under,
            plus the resolved logical ``sms_consent`` value when found
    """

    guest: GuestRecord
    fields: dict[str, Any] = field(default_factory=dict)


# === Value helpers ===


def extract_answer_value(value: Any) -> Any:
    """Reduce a raw answer to a plain value. Never raises.

    - strings are trimmed
    - ``{first, last}`` name parts are joined with a space
    - ``{area, phone}`` phone parts are concatenated
    - ``{full}`` is used verbatim
    - ``{year, month, day}`` becomes an ISO date string
    - checkbox lists collapse to True when they mention a consent keyword,
      otherwise to their joined text
    - anything else falls back to JSON text
    """
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, Mapping):
        return _extract_mapping(value)
    if isinstance(value, (list, tuple)):
        joined = ", ".join(str(item).strip() for item in value if item not in (None, ""))
        if any(keyword in joined.lower() for keyword in CONSENT_KEYWORDS):
            return True
        return joined
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


def _extract_mapping(value: Mapping[str, Any]) -> Any:
    if "first" in value or "last" in value:
        parts = [str(value.get("first") or "").strip(), str(value.get("last") or "").strip()]
        return " ".join(part for part in parts if part)
    if "area" in value and "phone" in value:
        return f"{value.get('area') or ''}{value.get('phone') or ''}".strip()
    if "full" in value:
        return value["full"]
    if {"year", "month", "day"} <= value.keys():
        try:
            return dt.date(int(value["year"]), int(value["month"]), int(value["day"])).isoformat()
        except (TypeError, ValueError):
            pass
    return json.dumps(value, default=str, sort_keys=True)


def split_full_name(full_name: str) -> tuple[str, str]:
    """Split on the first whitespace boundary.

    Returns:
        (first, last); last is the remaining tokens joined by single spaces
    """
    tokens = (full_name or "").split()
    if not tokens:
        return "", ""
    return tokens[0], " ".join(tokens[1:])


def format_phone_number(raw: str | None) -> str | None:
    """Canonicalize a phone number to E.164-style ``+<digits>``.

    Ten-digit numbers are assumed to be North American and get a leading 1.
    Returns None when the input holds no digits.
    """
    if not raw:
        return None
    digits = _DIGITS.sub("", str(raw))
    if not digits:
        return None
    if len(digits) == 10:
        digits = f"1{digits}"
    return f"+{digits}"


def group_subkeys(items: Iterable[tuple[Any, Any]]) -> dict[str, Any]:
    """Fold ``base[part]`` form keys back into one value per base key.

    ``q3_name[first]=Ada&q3_name[last]=Lovelace`` becomes
    ``{"q3_name": {"first": "Ada", "last": "Lovelace"}}``; ``base[]`` keys
    collect into a list. Other keys pass through, the last one winning.
    """
    grouped: dict[str, Any] = {}
    for key, value in items:
        key = str(key)
        match = _SUBKEY.match(key)
        if not match:
            grouped[key] = value
            continue
        base, part = match.groups()
        if part:
            parts = grouped.get(base)
            if not isinstance(parts, dict):
                parts = grouped[base] = {}
            parts[part] = value
        else:
            values = grouped.get(base)
            if not isinstance(values, list):
                values = grouped[base] = []
            values.append(value)
    return grouped


def generate_guest_id(source_id: str | None = None) -> str:
    """Build ``guest_<last 6 of source id>_<epoch ms>``.

    A random suffix stands in when no source id exists.
    """
    timestamp = int(dt.datetime.now(dt.UTC).timestamp() * 1000)
    part = source_id[-6:] if source_id else uuid.uuid4().hex[:6]
    return f"guest_{part}_{timestamp}"


def parse_visit_date(value: Any, default: dt.date) -> dt.date:
    """Parse ISO or US (m/d/Y) dates, returning ``default`` on failure."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str) or not value.strip():
        return default
    text = value.strip()
    try:
        return dt.date.fromisoformat(text[:10])
    except ValueError:
        pass
    for fmt in ("%m/%d/%Y", "%m-%d-%Y", "%d.%m.%Y"):
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    logger.debug("Unparseable visit date %r, using %s", text, default)
    return default


def load_field_ids() -> dict[str, str]:
    """Field-ID table, with overrides from CHECKIN_FORM_FIELD_IDS (JSON)."""
    table = dict(DEFAULT_FIELD_IDS)
    override = os.getenv(FIELD_IDS_ENV)
    if override:
        try:
            table.update({str(k): str(v) for k, v in json.loads(override).items()})
        except (ValueError, AttributeError):
            logger.warning("Ignoring invalid %s value", FIELD_IDS_ENV)
    return table


# === Normalizer ===


class SubmissionNormalizer:
    """Converts form-provider payloads into guest drafts."""

    def __init__(self, field_ids: Mapping[str, str] | None = None) -> None:
        """Initialize normalizer.

        Args:
            field_ids: Logical field -> form field ID. Defaults to the
                built-in table merged with CHECKIN_FORM_FIELD_IDS.
        """
        self.field_ids = dict(field_ids) if field_ids is not None else load_field_ids()

    def normalize(
        self,
        payload: Any,
        correlation_id: str | None = None,
    ) -> NormalizedSubmission:
        """Normalize a webhook payload.

        Args:
            payload: Decoded webhook body
            correlation_id: Used for the guest ID when the payload has no
                submission ID

        Returns:
            NormalizedSubmission with a pending guest draft

        Raises:
            MalformedSubmissionError: If no known shape is recognized
        """
        if not isinstance(payload, Mapping) or not payload:
            raise MalformedSubmissionError()

        envelope = dict(payload)
        answers = self._collect_answers(envelope)
        if not answers:
            raise MalformedSubmissionError()

        resolved = {
            logical: self._resolve(logical, answers)
            for logical in FIELD_MATCHERS
        }
        if not any(value not in (None, "", False) for value in resolved.values()):
            raise MalformedSubmissionError()

        fields = self._raw_fields(answers)
        if resolved.get("sms_consent") not in (None, ""):
            fields["sms_consent"] = resolved["sms_consent"]

        submission_id = _first_str(envelope, "submissionID", "submission_id", "submissionId", "id")
        form_id = _first_str(envelope, "formID", "form_id", "formId")

        guest = self._build_guest(
            resolved,
            fields,
            submission_id=submission_id,
            form_id=form_id,
            source_id=submission_id or correlation_id,
        )
        logger.info(
            "Normalized submission %s into guest %s",
            submission_id or "<none>",
            guest.id,
        )
        return NormalizedSubmission(guest=guest, fields=fields)

    # --- shape detection ---

    def _collect_answers(self, envelope: dict[str, Any]) -> list[Answer]:
        raw = envelope.get("rawRequest")
        if isinstance(raw, str) and raw.strip():
            try:
                raw = json.loads(raw)
            except ValueError:
                raw = group_subkeys(parse_qsl(raw, keep_blank_values=True))
        if isinstance(raw, Mapping) and raw:
            for key in ("submissionID", "formID"):
                if key in raw and key not in envelope:
                    envelope[key] = raw[key]
            return self._flat_answers(raw)

        submission = envelope.get("submission")
        if isinstance(submission, Mapping):
            for key in ("id", "form_id"):
                if key in submission and key not in envelope:
                    envelope[key] = submission[key]
            envelope = dict(submission)

        answers = envelope.get("answers")
        if isinstance(answers, Mapping) and answers:
            return self._answers_object(answers)

        return self._flat_answers(envelope)

    def _answers_object(self, answers: Mapping[str, Any]) -> list[Answer]:
        collected = []
        for answer_id, entry in answers.items():
            if isinstance(entry, Mapping) and ("answer" in entry or "text" in entry or "name" in entry):
                value = entry.get("answer")
                if value in (None, "", [], {}):
                    value = entry.get("prettyFormat")
                collected.append(
                    Answer(
                        value=value,
                        field_id=str(answer_id),
                        name=str(entry.get("name") or ""),
                        text=str(entry.get("text") or ""),
                    )
                )
            else:
                collected.append(Answer(value=entry, field_id=str(answer_id)))
        return collected

    def _flat_answers(self, data: Mapping[str, Any]) -> list[Answer]:
        collected = []
        for key, value in group_subkeys(data.items()).items():
            if key in METADATA_KEYS:
                continue
            match = _RAW_KEY.match(key)
            if match:
                collected.append(
                    Answer(value=value, field_id=match.group(1), name=match.group(2), text=key)
                )
            elif key.isdigit():
                collected.append(Answer(value=value, field_id=key))
            else:
                collected.append(Answer(value=value, name=key, text=key))
        return collected

    # --- resolution ---

    def _resolve(self, logical: str, answers: list[Answer]) -> Any:
        field_id = self.field_ids.get(logical)
        if field_id is not None:
            for answer in answers:
                if answer.field_id == field_id:
                    value = extract_answer_value(answer.value)
                    if value not in (None, ""):
                        return value

        for matcher in FIELD_MATCHERS[logical]:
            for answer in answers:
                if self._claimed_by_id(answer, logical):
                    continue
                if matcher.matches(answer.text) or matcher.matches(answer.name):
                    return extract_answer_value(answer.value)
        return None

    def _claimed_by_id(self, answer: Answer, logical: str) -> bool:
        """An answer whose ID is in the table belongs to that field only."""
        if answer.field_id is None:
            return False
        owner = next(
            (name for name, fid in self.field_ids.items() if fid == answer.field_id),
            None,
        )
        return owner is not None and owner != logical

    @staticmethod
    def _raw_fields(answers: list[Answer]) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        for answer in answers:
            for key in (answer.text, answer.name):
                if key and key not in fields:
                    fields[key] = answer.value
            if answer.field_id and answer.field_id not in fields:
                fields[answer.field_id] = answer.value
        return fields

    # --- assembly ---

    def _build_guest(
        self,
        resolved: dict[str, Any],
        fields: dict[str, Any],
        *,
        submission_id: str | None,
        form_id: str | None,
        source_id: str | None,
    ) -> GuestRecord:
        now = dt.datetime.now(dt.UTC)

        full_name = _text(resolved.get("full_name"))
        first_name = _text(resolved.get("first_name"))
        last_name = _text(resolved.get("last_name"))
        if full_name and not (first_name or last_name):
            first_name, last_name = split_full_name(full_name)
        elif not full_name:
            full_name = " ".join(part for part in (first_name, last_name) if part)

        text_values = {name: _text(resolved.get(name)) for name in _TEXT_FIELDS}

        return GuestRecord(
            id=generate_guest_id(source_id),
            full_name=full_name,
            first_name=first_name,
            last_name=last_name,
            email=text_values["email"] or None,
            phone_number=format_phone_number(_text(resolved.get("phone_number"))),
            company=text_values["company"] or None,
            title=text_values["title"] or None,
            host_name=text_values["host_name"],
            host_email=text_values["host_email"] or None,
            host_phone=format_phone_number(_text(resolved.get("host_phone"))),
            purpose_of_visit=text_values["purpose_of_visit"],
            expected_duration=text_values["expected_duration"] or None,
            special_requirements=text_values["special_requirements"] or None,
            visit_date=parse_visit_date(resolved.get("visit_date"), now.date()),
            notification_preferences=_preferences(fields),
            submission_id=submission_id,
            form_id=form_id,
            created_at=now,
            updated_at=now,
        )


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value).strip()


def _first_str(data: Mapping[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return str(value)
    return None


def _preferences(fields: Mapping[str, Any]) -> NotificationPreferences:
    raw = fields.get("notificationPreferences", fields.get("notification_preferences"))
    if isinstance(raw, Mapping):
        known = {k: v for k, v in raw.items() if k in ("sms", "slack") and isinstance(v, bool)}
        return NotificationPreferences(**known)
    return NotificationPreferences()
