"""Declarative field tables for form submission normalization.

Two tables drive field discovery:

- ``DEFAULT_FIELD_IDS`` maps a logical guest field to the stable form field
  ID it is published under. Lookup is direct.
- ``FIELD_MATCHERS`` maps a logical guest field to an ordered list of
  matcher predicates tried against each answer's question label and
  internal name. The first matcher that hits any answer wins.

Matching is case- and separator-insensitive: ``"Full Name"``,
``"full_name"`` and ``"fullName"`` all compact to ``"fullname"``.
"""

import re
from dataclasses import dataclass

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def compact(text: str) -> str:
    """Lowercase and drop every non-alphanumeric character."""
    return _NON_ALNUM.sub("", text.lower())


@dataclass(frozen=True)
class FieldMatcher:
    """Substring predicate over a compacted label.

    Attributes:
        needle: Text that must appear in the label
        exclude: Label fragments that veto the match
        exact: Require the whole label to equal the needle
    """

    needle: str
    exclude: tuple[str, ...] = ()
    exact: bool = False

    def matches(self, label: str) -> bool:
        key = compact(label)
        needle = compact(self.needle)
        if not key or not needle:
            return False
        hit = key == needle if self.exact else needle in key
        if not hit:
            return False
        return not any(compact(fragment) in key for fragment in self.exclude)


def contains(needle: str, *exclude: str) -> FieldMatcher:
    return FieldMatcher(needle, tuple(exclude))


def equals(needle: str) -> FieldMatcher:
    return FieldMatcher(needle, exact=True)


# Logical field -> stable field ID on the published check-in form.
DEFAULT_FIELD_IDS: dict[str, str] = {
    "full_name": "16",
    "email": "17",
    "company": "18",
    "title": "19",
    "host_name": "20",
    "host_email": "21",
    "purpose_of_visit": "22",
    "visit_date": "23",
    "host_phone": "24",
    "expected_duration": "25",
    "special_requirements": "26",
    "phone_number": "152",
    "sms_consent": "174",
}

_HOST = "host"
_NOT_PHONE = (_HOST, "consent", "agree", "sms", "text message")

# Logical field -> matchers in priority order.
FIELD_MATCHERS: dict[str, tuple[FieldMatcher, ...]] = {
    "full_name": (
        contains("full_name"),
        contains("your name"),
        contains("visitor name"),
        contains("guest name"),
        equals("name"),
    ),
    "first_name": (
        contains("first_name", _HOST),
        contains("given name", _HOST),
    ),
    "last_name": (
        contains("last_name", _HOST),
        contains("surname", _HOST),
        contains("family name", _HOST),
    ),
    "email": (
        contains("email", _HOST),
        contains("e-mail", _HOST),
    ),
    "phone_number": (
        contains("phone_number", *_NOT_PHONE),
        contains("phone", *_NOT_PHONE),
        contains("mobile", *_NOT_PHONE),
        contains("cell", *_NOT_PHONE),
    ),
    "company": (
        contains("company", _HOST),
        contains("organization", _HOST),
        contains("organisation", _HOST),
    ),
    "title": (
        contains("job_title"),
        equals("title"),
        contains("position"),
    ),
    "host_name": (
        contains("host_name"),
        contains("host_employee"),
        contains("visiting"),
        equals("host"),
        contains("who are you here to see"),
    ),
    "host_email": (contains("host_email"),),
    "host_phone": (
        contains("host_phone"),
        contains("host_mobile"),
    ),
    "purpose_of_visit": (
        contains("purpose_of_visit"),
        contains("purpose"),
        contains("reason"),
    ),
    "expected_duration": (
        contains("expected_duration"),
        contains("duration"),
    ),
    "special_requirements": (
        contains("special_requirements"),
        contains("requirements"),
        contains("accessibility"),
    ),
    "visit_date": (
        contains("visit_date"),
        equals("date"),
        contains("date of visit"),
    ),
    "sms_consent": (
        contains("sms_consent"),
        contains("text_consent"),
        contains("sms_notifications"),
        contains("consent"),
        contains("opt in"),
    ),
}

# Free-text answer fragments that mean "yes, I opt in".
CONSENT_KEYWORDS: tuple[str, ...] = (
    "consent",
    "agree",
    "opt in",
    "opt-in",
    "accept",
    "yes",
)
