"""Enumeration types for rental booking data models."""

from enum import Enum


class BookingStatus(str, Enum):
    """Primary status stored on a booking record."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ON_HOLD = "ON_HOLD"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class VerificationStatus(str, Enum):
    """Identity verification sub-status."""

    NOT_STARTED = "NOT_STARTED"
    SUBMITTED = "SUBMITTED"  # Documents in, awaiting review
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DISPUTE_REVIEW = "DISPUTE_REVIEW"


class PaymentStatus(str, Enum):
    """Payment sub-status for a booking."""

    PENDING = "PENDING"
    AUTHORIZED = "AUTHORIZED"
    PAID = "PAID"  # Captured
    FAILED = "FAILED"
    DISPUTED = "DISPUTED"  # Chargeback opened
    REFUNDED = "REFUNDED"
    PARTIAL_REFUND = "PARTIAL_REFUND"


class TripStatus(str, Enum):
    """Trip sub-status."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    ENDED = "ENDED"
    CLOSED_NO_TRIP = "CLOSED_NO_TRIP"  # Closed by an operator, car never picked up


class LifecycleState(str, Enum):
    """Canonical lifecycle state derived from all booking signals."""

    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    ON_HOLD = "ON_HOLD"
    CONFIRMED = "CONFIRMED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"
    ISSUES = "ISSUES"


class CancellationPolicyTier(str, Enum):
    """Penalty bracket selected by the time remaining before pickup."""

    FREE = "free"
    MODERATE = "moderate"
    LATE = "late"
    NO_REFUND = "no_refund"


class InstructionKind(str, Enum):
    """Money movement the caller must apply after a cancellation."""

    CARD_REFUND = "card_refund"
    CREDITS_RESTORE = "credits_restore"
    BONUS_RESTORE = "bonus_restore"
    DEPOSIT_RELEASE = "deposit_release"
