"""Webhook endpoints for external service integrations.

Provides endpoints for:
- Form provider submissions (JSON or form-encoded)
- Twilio inbound SMS
- Slack interactive button presses

These endpoints do not require authentication; where a shared secret is
configured, the payload signature is verified instead.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from checkin.models.errors import InvalidSignatureError, MalformedSubmissionError
from checkin.services.checkin_service import CheckinService
from checkin.utils.logging import get_correlation_id, get_logger, log_webhook_event
from checkin.utils.signatures import verify_form_signature, verify_slack_signature
from checkin_api.dependencies import WebhookSecrets, get_checkin_service, get_webhook_secrets
from checkin_api.models.guests import WebhookResponse
from checkin_api.routes.guests import client_ip

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

FORM_SIGNATURE_HEADERS = ("X-Jotform-Signature", "Signature")
EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?><Response></Response>'
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


# === Helper Functions ===


async def _read_form(request: Request) -> dict[str, Any]:
    """Form fields as a dict; repeated or ``name[]`` keys become lists."""
    form = await request.form()
    data: dict[str, Any] = {}
    for key, value in form.multi_items():
        if not isinstance(value, str):
            continue
        name = key[:-2] if key.endswith("[]") else key
        if key.endswith("[]") or name in data:
            existing = data.get(name)
            if existing is None:
                data[name] = [value]
            elif isinstance(existing, list):
                existing.append(value)
            else:
                data[name] = [existing, value]
        else:
            data[name] = value
    return data


async def _read_payload(request: Request, body: bytes) -> Any:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        return await _read_form(request)
    try:
        return json.loads(body)
    except ValueError as e:
        raise MalformedSubmissionError(details={"reason": "body is not valid JSON"}) from e


# === Webhook Endpoints ===


@router.post(
    "/webhooks/jotform",
    summary="Receive a form submission",
    description="""
Registers a guest from a form-provider webhook. Accepts JSON or form-encoded
bodies, including a ``rawRequest`` field.

When a webhook secret is configured and the request carries an
``X-Jotform-Signature`` header, it must be the hex HMAC-SHA256 of the body.
""",
    response_model=WebhookResponse,
)
async def jotform_webhook(
    request: Request,
    service: CheckinService = Depends(get_checkin_service),
    secrets: WebhookSecrets = Depends(get_webhook_secrets),
) -> WebhookResponse:
    body = await request.body()
    signature = next(
        (request.headers[h] for h in FORM_SIGNATURE_HEADERS if h in request.headers), None
    )
    if not verify_form_signature(secrets.jotform, body, signature):
        log_webhook_event(logger, "jotform", "submission", result="rejected", error="bad signature")
        raise InvalidSignatureError()

    log_webhook_event(logger, "jotform", "submission", result="received", body_size=len(body))
    payload = await _read_payload(request, body)

    try:
        outcome = await service.submit_form(
            payload,
            correlation_id=get_correlation_id(),
            ip_address=client_ip(request),
        )
    except MalformedSubmissionError as e:
        log_webhook_event(logger, "jotform", "submission", result="rejected", error=e.message)
        raise

    log_webhook_event(
        logger, "jotform", "submission", guest_id=outcome.guest.id, result="success"
    )
    return WebhookResponse(
        processing_result="success",
        guest_id=outcome.guest.id,
        message=f"Guest {outcome.guest.display_name} registered",
        notifications=outcome.dispatch.results,
    )


@router.post(
    "/webhooks/twilio",
    summary="Receive an inbound SMS",
    description="Replies with a canned message over SMS and acknowledges with empty TwiML.",
    response_class=Response,
)
async def twilio_webhook(
    request: Request,
    service: CheckinService = Depends(get_checkin_service),
) -> Response:
    form = await _read_form(request)
    from_number = str(form.get("From", ""))
    outcome = await service.handle_incoming_sms(
        from_number,
        str(form.get("Body", "")),
        message_sid=form.get("MessageSid"),
        ip_address=client_ip(request),
    )
    log_webhook_event(
        logger,
        "twilio",
        "incoming_sms",
        guest_id=outcome.guest_id,
        result="success",
        keyword=outcome.keyword,
    )
    return Response(content=EMPTY_TWIML, media_type="application/xml")


@router.post(
    "/webhooks/slack/interactions",
    summary="Receive a Slack button press",
    description="""
Handles acknowledge/call/update buttons on arrival notices. Requests are
verified with the Slack signing secret (v0 signature, five-minute window).
""",
    response_model=WebhookResponse,
)
async def slack_interactions(
    request: Request,
    service: CheckinService = Depends(get_checkin_service),
    secrets: WebhookSecrets = Depends(get_webhook_secrets),
) -> WebhookResponse:
    body = await request.body()
    if not verify_slack_signature(
        secrets.slack_signing,
        request.headers.get("X-Slack-Request-Timestamp"),
        request.headers.get("X-Slack-Signature"),
        body,
    ):
        log_webhook_event(logger, "slack", "interaction", result="rejected", error="bad signature")
        raise InvalidSignatureError()

    form = await _read_form(request)
    outcome = await service.handle_slack_interaction(
        form.get("payload", ""), ip_address=client_ip(request)
    )
    log_webhook_event(
        logger, "slack", "interaction", guest_id=outcome.guest_id, result="success"
    )
    return WebhookResponse(
        processing_result="success",
        guest_id=outcome.guest_id or None,
        message=outcome.message,
    )
