"""Guest models for visit records."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .enums import GuestStatus


class NotificationPreferences(BaseModel):
    """Per-guest notification opt-outs. Both channels default to enabled."""

    sms: bool = Field(default=True, description="Allow SMS to guest and host")
    slack: bool = Field(default=True, description="Allow team-chat posts")


class GuestRecord(BaseModel):
    """Canonical, storage-agnostic record of one visit."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(..., description="Opaque guest ID assigned at normalization")
    full_name: str = Field(default="", description="Full name as supplied")
    first_name: str = Field(default="", description="Given name")
    last_name: str = Field(default="", description="Family name(s)")
    email: str | None = Field(default=None, description="Guest email (unvalidated)")
    phone_number: str | None = Field(
        default=None, description="Phone number in E.164 form", examples=["+15551234567"]
    )
    company: str | None = Field(default=None, description="Company or organization")
    title: str | None = Field(default=None, description="Job title")
    host_name: str = Field(default="", description="Employee being visited")
    host_email: str | None = Field(default=None, description="Host email")
    host_phone: str | None = Field(default=None, description="Host phone in E.164 form")
    purpose_of_visit: str = Field(default="", description="Reason for the visit")
    expected_duration: str | None = Field(default=None, description="Free-text duration")
    special_requirements: str | None = Field(default=None, description="Accessibility etc.")
    visit_date: date = Field(..., description="Calendar date of the visit")
    status: GuestStatus = Field(default=GuestStatus.PENDING)
    sms_consent_given: bool = Field(default=False, description="SMS opt-in at submission")
    sms_consent_timestamp: datetime | None = Field(
        default=None, description="When consent was determined"
    )
    check_in_time: datetime | None = Field(default=None)
    check_out_time: datetime | None = Field(default=None)
    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )
    submission_id: str | None = Field(default=None, description="Source form submission ID")
    form_id: str | None = Field(default=None, description="Source form ID")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @property
    def display_name(self) -> str:
        """Name used in messages and audit snapshots."""
        if self.full_name:
            return self.full_name
        return f"{self.first_name} {self.last_name}".strip()


class GuestCreate(BaseModel):
    """Data required for manual guest entry at reception."""

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr | None = None
    phone_number: str | None = Field(default=None, pattern=r"^\+?[\d\s\-\(\)]+$")
    company: str | None = Field(default=None, max_length=100)
    title: str | None = Field(default=None, max_length=100)
    host_name: str = Field(..., min_length=1, max_length=100)
    host_email: EmailStr | None = None
    host_phone: str | None = Field(default=None, pattern=r"^\+?[\d\s\-\(\)]+$")
    purpose_of_visit: str = Field(..., min_length=1, max_length=500)
    expected_duration: str | None = Field(default=None, max_length=50)
    special_requirements: str | None = Field(default=None, max_length=500)
    visit_date: date | None = None
    sms_consent: bool = False
    notification_preferences: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )


class GuestStatusUpdate(BaseModel):
    """Administrative status change request."""

    status: GuestStatus
    notes: str = Field(default="", max_length=500)


class DailyStatusCounts(BaseModel):
    """Per-status counts for guests visiting today."""

    total: int = 0
    pending: int = 0
    approved: int = 0
    checked_in: int = 0
    with_host: int = 0
    checked_out: int = 0
    cancelled: int = 0


class GuestStats(BaseModel):
    """Dashboard counters."""

    today: DailyStatusCounts = Field(default_factory=DailyStatusCounts)
    currently_in_office: int = Field(default=0, description="checked-in or with-host")
    this_week: int = Field(default=0, description="Visits in the last 7 days")
    total: int = 0
