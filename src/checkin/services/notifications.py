"""Notification templates and the fan-out dispatcher.

Three independent channels are notified about guest events:

- guest SMS: needs a phone number, recorded consent and the SMS preference
- host SMS: needs a host phone and the SMS preference; arrival only
- team chat: needs the Slack preference

Sends run concurrently, each under its own timeout. A failing channel is
reported in the DispatchResult and never affects its siblings.
"""

import asyncio
import datetime as dt
import logging
from typing import Any

from checkin.models.enums import GuestStatus, NotificationChannel
from checkin.models.events import TransitionEvent
from checkin.models.guest import GuestRecord
from checkin.models.notification import (
    ChannelResult,
    DispatchResult,
    OutboundMessage,
    SendResult,
)
from checkin.services.channels import MessageChannel

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_TIMEOUT_SECONDS = 10.0

STATUS_EMOJIS: dict[GuestStatus, str] = {
    GuestStatus.PENDING: "⏳",
    GuestStatus.APPROVED: "✅",
    GuestStatus.CHECKED_IN: "\U0001f3e2",
    GuestStatus.WITH_HOST: "\U0001f91d",
    GuestStatus.CHECKED_OUT: "\U0001f44b",
    GuestStatus.CANCELLED: "❌",
}


# === Templates ===


def guest_status_message(first_name: str, host_name: str, status: GuestStatus | str) -> str:
    """SMS text sent to a guest when their status changes."""
    first = first_name or "there"
    host = host_name or "your host"
    value = getattr(status, "value", status)
    if value == GuestStatus.APPROVED.value:
        return (
            f"Hi {first}, your visit has been approved! "
            "Please proceed to our office at your scheduled time."
        )
    if value == GuestStatus.CHECKED_IN.value:
        return (
            f"Thank you for checking in, {first}! Your host {host} has been notified. "
            "Please take a seat and they will be with you shortly."
        )
    if value == GuestStatus.WITH_HOST.value:
        return f"Hi {first}, you are now with your host. Enjoy your visit!"
    if value == GuestStatus.CHECKED_OUT.value:
        return (
            f"Thank you for visiting us today, {first}! "
            "We hope you had a productive visit. Have a great day!"
        )
    if value == GuestStatus.CANCELLED.value:
        return (
            f"Hi {first}, your visit has been cancelled. "
            "Please contact your host if you need to reschedule."
        )
    return f"Hi {first}, your visit status has been updated to: {value}"


def consent_confirmation_message(guest: GuestRecord) -> str:
    """SMS sent to a consenting guest right after form submission."""
    host = guest.host_name or "our team"
    return (
        f"Thank you for checking in! {guest.first_name or 'Hi'}, your host {host} "
        "has been notified of your arrival.\n\n"
        "By providing consent, you'll receive SMS updates about your visit. "
        "Message and data rates may apply. Text STOP to opt out anytime."
    )


def welcome_message(guest: GuestRecord) -> str:
    """SMS sent to a guest registered manually at reception."""
    return (
        f"Welcome to our office, {guest.first_name or 'there'}!\n\n"
        "Your visit details:\n"
        f"Host: {guest.host_name or 'our team'}\n"
        f"Date: {guest.visit_date.isoformat()}\n\n"
        "Please proceed to the reception desk. Your host has been notified of your arrival.\n\n"
        "Reply HELP for assistance or STOP to opt out."
    )


def host_arrival_message(guest: GuestRecord, now: dt.datetime | None = None) -> str:
    """SMS sent to the host when their guest arrives."""
    now = now or dt.datetime.now(dt.UTC)
    return (
        "Guest Arrival Notification\n\n"
        f"{guest.display_name} has checked in.\n\n"
        f"Email: {guest.email or 'N/A'}\n"
        f"Phone: {guest.phone_number or 'N/A'}\n"
        f"Company: {guest.company or 'N/A'}\n"
        f"Purpose: {guest.purpose_of_visit or 'N/A'}\n"
        f"Expected Duration: {guest.expected_duration or 'Not specified'}\n\n"
        f"Time: {now.strftime('%Y-%m-%d %H:%M UTC')}\n\n"
        "Please proceed to reception when ready."
    )


def _button(label: str, value: str, action_id: str, style: str | None = None) -> dict[str, Any]:
    button: dict[str, Any] = {
        "type": "button",
        "text": {"type": "plain_text", "text": label, "emoji": True},
        "value": value,
        "action_id": action_id,
    }
    if style:
        button["style"] = style
    return button


def slack_arrival_message(guest: GuestRecord, now: dt.datetime | None = None) -> OutboundMessage:
    """Rich arrival notice with acknowledge/call/update buttons."""
    now = now or dt.datetime.now(dt.UTC)
    blocks: list[dict[str, Any]] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": "Guest Arrival Notification", "emoji": True},
        },
        {
            "type": "section",
            "fields": [
                {"type": "mrkdwn", "text": f"*Guest:*\n{guest.display_name}"},
                {"type": "mrkdwn", "text": f"*Host:*\n{guest.host_name or 'N/A'}"},
                {"type": "mrkdwn", "text": f"*Company:*\n{guest.company or 'N/A'}"},
                {"type": "mrkdwn", "text": f"*Check-in Time:*\n{now.strftime('%Y-%m-%d %H:%M UTC')}"},
                {"type": "mrkdwn", "text": f"*Email:*\n{guest.email or 'N/A'}"},
                {"type": "mrkdwn", "text": f"*Phone:*\n{guest.phone_number or 'N/A'}"},
            ],
        },
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*Purpose of Visit:*\n{guest.purpose_of_visit or 'N/A'}"},
        },
    ]
    if guest.special_requirements:
        blocks.append(
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"*Special Requirements:*\n{guest.special_requirements}",
                },
            }
        )
    blocks.append(
        {
            "type": "actions",
            "block_id": f"guest_actions_{guest.id}",
            "elements": [
                _button("Acknowledge", f"acknowledge_{guest.id}", "acknowledge_guest", "primary"),
                _button("Call Guest", f"call_{guest.id}", "call_guest"),
                _button("Update Status", f"update_{guest.id}", "update_guest_status"),
            ],
        }
    )
    text = f"Guest {guest.display_name} has arrived for {guest.host_name or 'the team'}"
    return OutboundMessage(text=text, blocks=blocks)


def slack_status_message(
    guest: GuestRecord,
    previous_status: GuestStatus,
    new_status: GuestStatus,
    now: dt.datetime | None = None,
) -> OutboundMessage:
    """Status-change notice for the team channel."""
    now = now or dt.datetime.now(dt.UTC)
    emoji = STATUS_EMOJIS.get(new_status, "")
    blocks = [
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"{emoji} *Guest Status Update*\n\n*{guest.display_name}* status changed "
                    f"from *{previous_status.value}* to *{new_status.value}*"
                ),
            },
        },
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": f"Host: {guest.host_name or 'N/A'} | Time: {now.strftime('%Y-%m-%d %H:%M UTC')}",
                }
            ],
        },
    ]
    text = f"Guest {guest.display_name} status updated to {new_status.value}"
    return OutboundMessage(text=text, blocks=blocks)


# === Dispatcher ===


class NotificationDispatcher:
    """Fans guest events out to the eligible channels."""

    def __init__(
        self,
        sms: MessageChannel | None = None,
        slack: MessageChannel | None = None,
        slack_channel_id: str = "",
        timeout: float = DEFAULT_CHANNEL_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize dispatcher.

        Args:
            sms: Channel used for both guest and host SMS
            slack: Team-chat channel
            slack_channel_id: Destination for team-chat posts
            timeout: Per-send timeout in seconds
        """
        self.sms = sms
        self.slack = slack
        self.slack_channel_id = slack_channel_id
        self.timeout = timeout

    # --- eligibility ---

    def guest_sms_allowed(self, guest: GuestRecord) -> bool:
        return bool(
            self.sms
            and guest.phone_number
            and guest.sms_consent_given
            and guest.notification_preferences.sms
        )

    def host_sms_allowed(self, guest: GuestRecord) -> bool:
        return bool(self.sms and guest.host_phone and guest.notification_preferences.sms)

    def slack_allowed(self, guest: GuestRecord) -> bool:
        return bool(self.slack and guest.notification_preferences.slack)

    # --- entry points ---

    async def dispatch_submission(
        self,
        guest: GuestRecord,
        *,
        manual: bool = False,
    ) -> DispatchResult:
        """Notify everyone about a newly registered guest.

        Args:
            guest: The persisted guest
            manual: Registered at reception rather than through the form;
                the guest gets the welcome text instead of the consent
                confirmation
        """
        sends = []
        if self.guest_sms_allowed(guest):
            text = welcome_message(guest) if manual else consent_confirmation_message(guest)
            sends.append(self._sms(NotificationChannel.GUEST_SMS, guest.phone_number, text))
        if self.host_sms_allowed(guest):
            sends.append(
                self._sms(NotificationChannel.HOST_SMS, guest.host_phone, host_arrival_message(guest))
            )
        if self.slack_allowed(guest):
            sends.append(self._slack(slack_arrival_message(guest)))
        return await self._gather(sends)

    async def dispatch_transition(
        self,
        event: TransitionEvent,
        guest: GuestRecord,
    ) -> DispatchResult:
        """Notify about a status change. Same-status events send nothing."""
        if event.is_noop:
            return DispatchResult()

        arrival = event.new_status == GuestStatus.CHECKED_IN
        sends = []
        if self.guest_sms_allowed(guest):
            text = guest_status_message(guest.first_name, guest.host_name, event.new_status)
            sends.append(self._sms(NotificationChannel.GUEST_SMS, guest.phone_number, text))
        if arrival and self.host_sms_allowed(guest):
            sends.append(
                self._sms(NotificationChannel.HOST_SMS, guest.host_phone, host_arrival_message(guest))
            )
        if self.slack_allowed(guest):
            if arrival:
                message = slack_arrival_message(guest, event.timestamp)
            else:
                message = slack_status_message(
                    guest, event.previous_status, event.new_status, event.timestamp
                )
            sends.append(self._slack(message))
        return await self._gather(sends)

    async def send_sms(self, to: str, text: str) -> ChannelResult:
        """Send a one-off SMS (e.g. a canned reply to an inbound message)."""
        return await self._sms(NotificationChannel.GUEST_SMS, to, text)

    # --- internals ---

    def _sms(self, channel: NotificationChannel, to: str | None, text: str):
        return self._send(channel, self.sms, to or "", OutboundMessage(text=text))

    def _slack(self, message: OutboundMessage):
        return self._send(NotificationChannel.SLACK, self.slack, self.slack_channel_id, message)

    async def _send(
        self,
        channel: NotificationChannel,
        transport: MessageChannel | None,
        target: str,
        message: OutboundMessage,
    ) -> ChannelResult:
        if transport is None:
            return ChannelResult(channel=channel, target=target, success=False, error="not configured")
        try:
            result: SendResult = await asyncio.wait_for(
                transport.send(target, message), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning("%s send to %s timed out", channel.value, target)
            return ChannelResult(channel=channel, target=target, success=False, error="timeout")
        except Exception as e:
            logger.exception("%s send to %s raised", channel.value, target)
            return ChannelResult(channel=channel, target=target, success=False, error=str(e) or type(e).__name__)
        return ChannelResult(
            channel=channel, target=target, success=result.success, error=result.error
        )

    @staticmethod
    async def _gather(sends: list) -> DispatchResult:
        if not sends:
            return DispatchResult()
        results = await asyncio.gather(*sends)
        return DispatchResult(results=list(results))
