"""Outbound message channels.

Every channel honours the same contract: ``send(target, message)`` returns a
SendResult and never raises for transport or provider errors.
"""

import logging
from typing import Protocol

import httpx

from checkin.models.notification import OutboundMessage, SendResult

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
SLACK_API_BASE = "https://slack.com/api"
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0


class MessageChannel(Protocol):
    """A delivery mechanism for one kind of recipient."""

    async def send(self, target: str, message: OutboundMessage) -> SendResult: ...


class _HttpChannel:
    """Lazily created shared httpx client."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self.timeout = timeout

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class TwilioSmsChannel(_HttpChannel):
    """SMS delivery through the Twilio Messages REST API."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(client, timeout)
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number

    @property
    def messages_url(self) -> str:
        return f"{TWILIO_API_BASE}/Accounts/{self.account_sid}/Messages.json"

    async def send(self, target: str, message: OutboundMessage) -> SendResult:
        """Send an SMS to ``target`` (E.164)."""
        if not (self.account_sid and self.auth_token and self.from_number):
            return SendResult(success=False, error="SMS channel not configured")

        try:
            response = await self._ensure_client().post(
                self.messages_url,
                data={"To": target, "From": self.from_number, "Body": message.text},
                auth=(self.account_sid, self.auth_token),
            )
        except httpx.TimeoutException:
            logger.warning("Twilio request timed out for %s", target)
            return SendResult(success=False, error="timeout")
        except httpx.HTTPError as e:
            logger.warning("Twilio request failed for %s: %s", target, e)
            return SendResult(success=False, error=str(e))

        if response.is_success:
            sid = _json(response).get("sid")
            logger.info("SMS sent to %s (sid=%s)", target, sid)
            return SendResult(success=True, message_id=sid)

        error = _error_text(response, "message")
        logger.warning("Twilio rejected SMS to %s: %s", target, error)
        return SendResult(success=False, error=error)


class SlackChannel(_HttpChannel):
    """Team-chat posts through Slack ``chat.postMessage``.

    Slack answers 200 even for failures; ``{"ok": false}`` is treated as one.
    """

    def __init__(
        self,
        bot_token: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(client, timeout)
        self.bot_token = bot_token

    async def send(self, target: str, message: OutboundMessage) -> SendResult:
        """Post ``message`` to the channel ID ``target``."""
        if not (self.bot_token and target):
            return SendResult(success=False, error="Slack channel not configured")

        body: dict[str, object] = {"channel": target, "text": message.text}
        if message.blocks:
            body["blocks"] = message.blocks

        try:
            response = await self._ensure_client().post(
                f"{SLACK_API_BASE}/chat.postMessage",
                json=body,
                headers={"Authorization": f"Bearer {self.bot_token}"},
            )
        except httpx.TimeoutException:
            logger.warning("Slack request timed out for %s", target)
            return SendResult(success=False, error="timeout")
        except httpx.HTTPError as e:
            logger.warning("Slack request failed for %s: %s", target, e)
            return SendResult(success=False, error=str(e))

        if not response.is_success:
            return SendResult(success=False, error=f"HTTP {response.status_code}")

        payload = _json(response)
        if not payload.get("ok"):
            error = payload.get("error", "unknown_error")
            logger.warning("Slack rejected message to %s: %s", target, error)
            return SendResult(success=False, error=error)

        logger.info("Slack message posted to %s", target)
        return SendResult(success=True, message_id=payload.get("ts"))


def _error_text(response: httpx.Response, key: str) -> str:
    detail = _json(response).get(key)
    return f"HTTP {response.status_code}: {detail}" if detail else f"HTTP {response.status_code}"


def _json(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
