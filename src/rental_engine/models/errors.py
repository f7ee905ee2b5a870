"""Standard error codes for the cancellation engine.

Every rejection raised by the engine carries one of these codes so callers
can decide whether to show a message to the guest or page an operator.
Nothing here is retryable: the engine is pure computation, so the same
input fails the same way every time.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Error codes raised by the lifecycle and reconciliation services."""

    INVALID_STATE_TRANSITION = "ERR_CANCEL_001"
    DATA_INTEGRITY = "ERR_CANCEL_002"
    TIMING_OUT_OF_RANGE = "ERR_CANCEL_003"
    POLICY_MISCONFIGURED = "ERR_CANCEL_004"
    NOT_CANCELLED = "ERR_CANCEL_005"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_STATE_TRANSITION: "This booking can no longer be cancelled",
    ErrorCode.DATA_INTEGRITY: "Booking payment records do not reconcile",
    ErrorCode.TIMING_OUT_OF_RANGE: "Cancellation instant is outside the booking timeline",
    ErrorCode.POLICY_MISCONFIGURED: "Cancellation policy configuration is invalid",
    ErrorCode.NOT_CANCELLED: "Booking has no recorded cancellation to re-evaluate",
}

# What the caller should do next
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.INVALID_STATE_TRANSITION: "Show the guest the current trip status; do not retry",
    ErrorCode.DATA_INTEGRITY: "Alert an operator to reconcile the booking ledger before refunding",
    ErrorCode.TIMING_OUT_OF_RANGE: "Fix the caller: pass an aware instant inside the booking window",
    ErrorCode.POLICY_MISCONFIGURED: "Fix the RENTAL_* policy settings and redeploy",
    ErrorCode.NOT_CANCELLED: "Use calculate_refund for bookings that are not yet cancelled",
}


class ErrorDetail(BaseModel):
    """Serializable error payload handed back to API and UI layers."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    user_facing: bool = False
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
        user_facing: bool = False,
    ) -> "ErrorDetail":
        """Create an ErrorDetail from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error
            user_facing: Whether the message may be shown to a guest

        Returns:
            An ErrorDetail with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            user_facing=user_facing,
            details=details,
        )


class CancellationError(Exception):
    """Base exception raised by the engine.

    Can be caught and converted to an ErrorDetail for API responses.
    """

    code: ErrorCode = ErrorCode.DATA_INTEGRITY
    user_facing: bool = False
    retryable: bool = False

    def __init__(
        self,
        details: Optional[dict[str, str]] = None,
        code: Optional[ErrorCode] = None,
    ):
        if code is not None:
            self.code = code
        self.message = ERROR_MESSAGES[self.code]
        self.recovery = ERROR_RECOVERY[self.code]
        self.details = details
        super().__init__(self._render())

    def _render(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{k}={v}" for k, v in sorted(self.details.items()))
        return f"{self.message} ({context})"

    def to_error_detail(self) -> ErrorDetail:
        """Convert this exception to an ErrorDetail."""
        return ErrorDetail.from_code(self.code, self.details, self.user_facing)


class InvalidStateTransitionError(CancellationError):
    """Cancellation requested for an active, completed or cancelled booking."""

    code = ErrorCode.INVALID_STATE_TRANSITION
    user_facing = True


class DataIntegrityError(CancellationError):
    """Funding-mix fields do not reconcile with the booking totals.

    Indicates corrupted upstream accounting; never shown to guests.
    """

    code = ErrorCode.DATA_INTEGRITY


class TimingInputError(CancellationError):
    """Cancellation instant is naive, precedes creation, or is far in the future."""

    code = ErrorCode.TIMING_OUT_OF_RANGE


class PolicyConfigurationError(CancellationError):
    """The tier table or policy timezone is invalid."""

    code = ErrorCode.POLICY_MISCONFIGURED
