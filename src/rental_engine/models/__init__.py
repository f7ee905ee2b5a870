"""Pydantic models for rental booking lifecycle and refund data."""

from .booking import BookingSnapshot
from .enums import (
    BookingStatus,
    CancellationPolicyTier,
    InstructionKind,
    LifecycleState,
    PaymentStatus,
    TripStatus,
    VerificationStatus,
)
from .errors import (
    CancellationError,
    DataIntegrityError,
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    ErrorCode,
    ErrorDetail,
    InvalidStateTransitionError,
    PolicyConfigurationError,
    TimingInputError,
)
from .refund import RefundInstruction, RefundResult, SourceAllocation, TierCalculation

__all__ = [
    # Enums
    "BookingStatus",
    "CancellationPolicyTier",
    "InstructionKind",
    "LifecycleState",
    "PaymentStatus",
    "TripStatus",
    "VerificationStatus",
    # Booking
    "BookingSnapshot",
    # Refund
    "RefundInstruction",
    "RefundResult",
    "SourceAllocation",
    "TierCalculation",
    # Errors
    "CancellationError",
    "DataIntegrityError",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "ErrorCode",
    "ErrorDetail",
    "InvalidStateTransitionError",
    "PolicyConfigurationError",
    "TimingInputError",
]
