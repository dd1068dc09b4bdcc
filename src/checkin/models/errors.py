"""Standard error codes for the check-in service.

Only request-level failures are modelled as exceptions here. Channel
delivery and audit write failures are soft: they surface as
ChannelResult entries and log lines, never as raised errors.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes returned to API clients."""

    MALFORMED_SUBMISSION = "ERR_MALFORMED_SUBMISSION"
    GUEST_NOT_FOUND = "ERR_GUEST_NOT_FOUND"
    INVALID_SIGNATURE = "ERR_INVALID_SIGNATURE"
    VALIDATION_ERROR = "ERR_VALIDATION"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.MALFORMED_SUBMISSION: "No recognizable submission data found in payload",
    ErrorCode.GUEST_NOT_FOUND: "Guest not found",
    ErrorCode.INVALID_SIGNATURE: "Invalid webhook signature",
    ErrorCode.VALIDATION_ERROR: "Invalid request data",
}

# Recovery suggestions for clients
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.MALFORMED_SUBMISSION: "Check the form webhook configuration and payload format",
    ErrorCode.GUEST_NOT_FOUND: "Verify the guest ID",
    ErrorCode.INVALID_SIGNATURE: "Verify webhook secret configuration",
    ErrorCode.VALIDATION_ERROR: "Correct the highlighted fields and retry",
}


class ErrorResponse(BaseModel):
    """Standard error body for failed requests."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class CheckinError(Exception):
    """Base exception for request-level check-in failures.

    Can be caught and converted to an ErrorResponse for API responses.
    """

    code: ErrorCode = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        code: Optional[ErrorCode] = None,
        details: Optional[dict[str, str]] = None,
    ):
        if code is not None:
            self.code = code
        self.message = ERROR_MESSAGES[self.code]
        self.recovery = ERROR_RECOVERY[self.code]
        self.details = details
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse."""
        return ErrorResponse.from_code(self.code, self.details)


class MalformedSubmissionError(CheckinError):
    """Raised when a payload matches none of the known submission shapes."""

    code = ErrorCode.MALFORMED_SUBMISSION


class GuestNotFoundError(CheckinError):
    """Raised when a guest ID does not resolve to a stored guest."""

    code = ErrorCode.GUEST_NOT_FOUND

    def __init__(self, guest_id: str) -> None:
        self.guest_id = guest_id
        super().__init__(details={"guest_id": guest_id})


class InvalidSignatureError(CheckinError):
    """Raised when an inbound webhook fails signature verification."""

    code = ErrorCode.INVALID_SIGNATURE
