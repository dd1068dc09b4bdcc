"""Logging for the check-in service, keyed by a per-request correlation ID.

The correlation ID lives in a ContextVar, so it follows a request across
awaits and into worker threads started with ``asyncio.to_thread``. Every
line written through ``configure_logging`` is prefixed with it:

    [3f2b...] 2025-06-15 10:00:00 INFO checkin.services.checkin_service: ...

Usage:
    from checkin.utils.logging import get_logger, log_guest_operation

    logger = get_logger(__name__)
    log_guest_operation(logger, "check_in", guest_id=guest.id, status="checked-in")
"""

import logging
import os
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from checkin.models.notification import DispatchResult

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
NO_CORRELATION_ID = "no-correlation-id"


# === Correlation ID context ===


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID to the current context, generating one if absent.

    Returns:
        The ID now in effect
    """
    cid = correlation_id or generate_correlation_id()
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


# === Handlers ===


class CorrelationIdFilter(logging.Filter):
    """Stamps ``record.correlation_id``; never drops a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """Prefixes each formatted line with ``[<correlation id>]``."""

    def format(self, record: logging.LogRecord) -> str:
        cid = getattr(record, "correlation_id", None) or get_correlation_id() or NO_CORRELATION_ID
        record.correlation_id = cid
        return f"[{cid}] {super().format(record)}"


def configure_logging(level: str | None = None) -> None:
    """Install the structured formatter on the root logger once.

    Args:
        level: Log level name. Defaults to LOG_LEVEL env var, then INFO.
    """
    root = logging.getLogger()
    root.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())

    if any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter(LOG_FORMAT))
    handler.addFilter(CorrelationIdFilter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """``logging.getLogger`` with a single CorrelationIdFilter attached."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


# === Structured helpers ===


def _context(**fields: Any) -> dict[str, Any]:
    return {key: value for key, value in fields.items() if value not in (None, "")}


def _emit(logger: logging.Logger, level: int, parts: list[str], context: dict[str, Any]) -> None:
    logger.log(level, " | ".join(parts), extra=context)


def log_guest_operation(
    logger: logging.Logger,
    operation: str,
    *,
    guest_id: str | None = None,
    guest_name: str | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a guest lifecycle operation.

    Every context field is rendered as ``key=value`` after the headline, in
    argument order. An ``error`` raises the level to ERROR.

    Args:
        logger: Logger instance
        operation: Operation name (e.g., "submit_form", "update_status")
        guest_id: Guest ID if available
        guest_name: Guest display name if available
        status: Guest status after the operation
        error: Error message if operation failed
        **extra: Additional context fields
    """
    context = _context(
        guest_id=guest_id, guest_name=guest_name, status=status, error=error, **extra
    )
    parts = [f"Guest operation: {operation}"]
    parts.extend(f"{key}={value}" for key, value in context.items())
    _emit(
        logger,
        logging.ERROR if error else logging.INFO,
        parts,
        {"operation": operation, **context},
    )


# Log level by webhook result; anything else is INFO
_WEBHOOK_LEVELS = {
    "error": logging.ERROR,
    "rejected": logging.WARNING,
}


def log_webhook_event(
    logger: logging.Logger,
    source: str,
    event: str,
    *,
    guest_id: str | None = None,
    result: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log an inbound webhook from the form provider, Twilio or Slack.

    Args:
        logger: Logger instance
        source: Webhook source (jotform, twilio, slack)
        event: Event description (e.g., "submission", "incoming_sms")
        guest_id: Associated guest ID if available
        result: received, success, rejected or error
        error: Error message if processing failed
        **extra: Additional context fields
    """
    context = _context(
        webhook_source=source,
        webhook_event=event,
        guest_id=guest_id,
        result=result,
        error=error,
        **extra,
    )
    parts = [f"Webhook event: {source} ({event})"]
    if result:
        parts.append(f"result={result}")
    if guest_id:
        parts.append(f"guest={guest_id}")
    if error:
        parts.append(f"error={error}")
    _emit(logger, _WEBHOOK_LEVELS.get(result or "", logging.INFO), parts, context)


def log_dispatch_result(
    logger: logging.Logger,
    guest_id: str,
    trigger: str,
    dispatch: "DispatchResult",
) -> None:
    """Log per-channel notification outcomes; any failure logs at WARNING."""
    context = {
        "guest_id": guest_id,
        "trigger": trigger,
        "channels": [r.channel.value for r in dispatch.results],
        "failed_channels": [r.channel.value for r in dispatch.failures],
    }
    parts = [f"Notification dispatch: {trigger}", f"guest={guest_id}", dispatch.summary()]
    _emit(logger, logging.WARNING if dispatch.failures else logging.INFO, parts, context)
