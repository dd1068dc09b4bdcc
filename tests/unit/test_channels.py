"""Unit tests for the Twilio SMS and Slack channels.

HTTP is faked with httpx.MockTransport; channels must turn every provider
or transport failure into a SendResult rather than raising.
"""

import base64
import json
from collections.abc import Callable
from urllib.parse import parse_qs

import httpx
import pytest

from checkin.models.notification import OutboundMessage
from checkin.services.channels import SlackChannel, TwilioSmsChannel

Handler = Callable[[httpx.Request], httpx.Response]


def mock_client(handler: Handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestTwilioSmsChannel:
    """Test suite for TwilioSmsChannel.send()."""

    @pytest.mark.asyncio
    async def test_sends_form_encoded_message(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"sid": "SM123", "status": "queued"})

        channel = TwilioSmsChannel("AC123", "secret", "+15550000000", client=mock_client(handler))
        result = await channel.send("+15551234567", OutboundMessage(text="Hi Ada"))

        assert result.success
        assert result.message_id == "SM123"
        request = seen[0]
        assert request.url.path == "/2010-04-01/Accounts/AC123/Messages.json"
        form = parse_qs(request.content.decode())
        assert form == {"To": ["+15551234567"], "From": ["+15550000000"], "Body": ["Hi Ada"]}
        expected_auth = base64.b64encode(b"AC123:secret").decode()
        assert request.headers["Authorization"] == f"Basic {expected_auth}"

    @pytest.mark.asyncio
    async def test_provider_rejection(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"code": 21211, "message": "Invalid 'To' Phone Number"})

        channel = TwilioSmsChannel("AC123", "secret", "+15550000000", client=mock_client(handler))
        result = await channel.send("+1", OutboundMessage(text="Hi"))

        assert not result.success
        assert result.error == "HTTP 400: Invalid 'To' Phone Number"

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        channel = TwilioSmsChannel("AC123", "secret", "+15550000000", client=mock_client(handler))
        result = await channel.send("+15551234567", OutboundMessage(text="Hi"))

        assert not result.success
        assert result.error == "connection refused"

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("read timed out")

        channel = TwilioSmsChannel("AC123", "secret", "+15550000000", client=mock_client(handler))
        result = await channel.send("+15551234567", OutboundMessage(text="Hi"))

        assert result.error == "timeout"

    @pytest.mark.asyncio
    async def test_unconfigured(self) -> None:
        result = await TwilioSmsChannel("", "", "").send("+15551234567", OutboundMessage(text="Hi"))
        assert not result.success
        assert result.error == "SMS channel not configured"


class TestSlackChannel:
    """Test suite for SlackChannel.send()."""

    @pytest.mark.asyncio
    async def test_posts_blocks(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True, "ts": "1718445600.000100"})

        channel = SlackChannel("xoxb-token", client=mock_client(handler))
        blocks = [{"type": "section", "text": {"type": "mrkdwn", "text": "hi"}}]
        result = await channel.send("C0123456789", OutboundMessage(text="hi", blocks=blocks))

        assert result.success
        assert result.message_id == "1718445600.000100"
        request = seen[0]
        assert request.url.path == "/api/chat.postMessage"
        assert request.headers["Authorization"] == "Bearer xoxb-token"
        assert json.loads(request.content) == {"channel": "C0123456789", "text": "hi", "blocks": blocks}

    @pytest.mark.asyncio
    async def test_ok_false_is_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": False, "error": "channel_not_found"})

        channel = SlackChannel("xoxb-token", client=mock_client(handler))
        result = await channel.send("C0123456789", OutboundMessage(text="hi"))

        assert not result.success
        assert result.error == "channel_not_found"

    @pytest.mark.asyncio
    async def test_http_error_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="unavailable")

        channel = SlackChannel("xoxb-token", client=mock_client(handler))
        result = await channel.send("C0123456789", OutboundMessage(text="hi"))

        assert result.error == "HTTP 503"

    @pytest.mark.asyncio
    async def test_unconfigured(self) -> None:
        result = await SlackChannel("").send("C0123456789", OutboundMessage(text="hi"))
        assert result.error == "Slack channel not configured"

    @pytest.mark.asyncio
    async def test_close_releases_client(self) -> None:
        channel = SlackChannel("xoxb-token")
        channel._ensure_client()
        await channel.close()
        assert channel._client is None
