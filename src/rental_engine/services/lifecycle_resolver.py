"""Lifecycle state resolver.

Collapses the independent status signals on a booking (primary status,
verification, payment, trip, timestamps, open claims) into one canonical
LifecycleState. Precedence, first match wins:

1. CANCELLED  - primary status is cancelled
2. NO_SHOW    - marked no-show, or closed without a trip after the return time
3. ISSUES     - payment failed/disputed, verification rejected, or open claim
4. ON_HOLD    - held by an operator, or verification overdue
5. COMPLETED  - trip ended
6. ACTIVE     - trip started and not ended
7. CONFIRMED  - confirmed and payment captured or onboarding complete
8. VERIFIED   - still pending but identity approved
9. PENDING    - fallback

Every page that shows a booking status calls this resolver instead of
re-encoding the rules.
"""

import datetime as dt
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..config import EngineSettings, get_settings
from ..models import (
    BookingSnapshot,
    BookingStatus,
    LifecycleState,
    PaymentStatus,
    TripStatus,
    VerificationStatus,
)
from ..models.booking import parse_enum, parse_flag, parse_instant, parse_schedule
from ..utils.logging import get_logger, log_lifecycle_resolution

logger = get_logger(__name__)

# States from which a cancellation is no longer allowed
NON_CANCELLABLE_STATES = frozenset(
    {LifecycleState.ACTIVE, LifecycleState.COMPLETED, LifecycleState.CANCELLED}
)


@dataclass(frozen=True)
class LifecycleSignals:
    """The subset of booking fields the resolver reads.

    Every field except ``status`` may be absent; absence means "not yet true".
    """

    booking_id: str
    status: BookingStatus
    verification_status: VerificationStatus = VerificationStatus.NOT_STARTED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    trip_status: TripStatus = TripStatus.NOT_STARTED
    verification_required: bool = False
    has_open_claim: bool = False
    created_at: dt.datetime | None = None
    return_at: dt.datetime | None = None
    documents_submitted_at: dt.datetime | None = None
    onboarding_completed_at: dt.datetime | None = None
    verification_deadline: dt.datetime | None = None
    trip_started_at: dt.datetime | None = None
    trip_ended_at: dt.datetime | None = None

    @classmethod
    def from_snapshot(cls, snapshot: BookingSnapshot) -> "LifecycleSignals":
        return cls(
            booking_id=snapshot.booking_id,
            status=snapshot.status,
            verification_status=snapshot.verification_status,
            payment_status=snapshot.payment_status,
            trip_status=snapshot.trip_status,
            verification_required=snapshot.verification_required,
            has_open_claim=snapshot.has_open_claim,
            created_at=snapshot.created_at,
            return_at=snapshot.return_at,
            documents_submitted_at=snapshot.documents_submitted_at,
            onboarding_completed_at=snapshot.onboarding_completed_at,
            verification_deadline=snapshot.verification_deadline,
            trip_started_at=snapshot.trip_started_at,
            trip_ended_at=snapshot.trip_ended_at,
        )

    @classmethod
    def from_record(
        cls, record: Mapping[str, Any], tzinfo: dt.tzinfo
    ) -> "LifecycleSignals":
        """Read signals from a raw booking record without ever raising.

        Unparseable values fall back to their "not yet true" default.
        """

        def instant(key: str) -> dt.datetime | None:
            return parse_instant(record.get(key), tzinfo)

        return_at = parse_schedule(record, "returnAt", "endDate", "endTime", tzinfo)

        return cls(
            booking_id=str(record.get("id") or "unknown"),
            status=parse_enum(BookingStatus, record.get("status"), BookingStatus.PENDING),
            verification_status=parse_enum(
                VerificationStatus,
                record.get("verificationStatus"),
                VerificationStatus.NOT_STARTED,
            ),
            payment_status=parse_enum(
                PaymentStatus, record.get("paymentStatus"), PaymentStatus.PENDING
            ),
            trip_status=parse_enum(
                TripStatus, record.get("tripStatus"), TripStatus.NOT_STARTED
            ),
            verification_required=parse_flag(record.get("verificationRequired")),
            has_open_claim=parse_flag(record.get("hasOpenClaim")),
            created_at=instant("createdAt"),
            return_at=return_at,
            documents_submitted_at=instant("documentsSubmittedAt"),
            onboarding_completed_at=instant("onboardingCompletedAt"),
            verification_deadline=instant("verificationDeadline"),
            trip_started_at=instant("tripStartedAt"),
            trip_ended_at=instant("tripEndedAt"),
        )


class LifecycleResolver:
    """Resolves the canonical lifecycle state of a booking."""

    def __init__(self, settings: EngineSettings | None = None) -> None:
        """Initialize the resolver.

        Args:
            settings: Engine settings; defaults to the environment settings
        """
        self.settings = settings or get_settings()
        self.verification_grace = dt.timedelta(hours=self.settings.verification_grace_hours)

    def resolve(self, snapshot: BookingSnapshot, at: dt.datetime) -> LifecycleState:
        """Resolve the lifecycle state of a snapshot at instant ``at``.

        Args:
            snapshot: Booking snapshot
            at: Evaluation instant (timezone-aware)

        Returns:
            Exactly one LifecycleState.
        """
        return self.resolve_signals(LifecycleSignals.from_snapshot(snapshot), at)

    def resolve_record(self, record: Mapping[str, Any], at: dt.datetime) -> LifecycleState:
        """Resolve the lifecycle state straight from a raw booking record."""
        signals = LifecycleSignals.from_record(record, self.settings.tzinfo)
        return self.resolve_signals(signals, at)

    def resolve_signals(self, signals: LifecycleSignals, at: dt.datetime) -> LifecycleState:
        state, rule = self._decide(signals, at)
        log_lifecycle_resolution(logger, signals.booking_id, state.value, rule=rule)
        return state

    def _decide(
        self, s: LifecycleSignals, at: dt.datetime
    ) -> tuple[LifecycleState, str]:
        if s.status == BookingStatus.CANCELLED:
            return LifecycleState.CANCELLED, "status_cancelled"

        if s.status == BookingStatus.NO_SHOW:
            return LifecycleState.NO_SHOW, "status_no_show"
        if self._closed_without_trip(s, at):
            return LifecycleState.NO_SHOW, "closed_without_trip"

        if s.payment_status in (PaymentStatus.FAILED, PaymentStatus.DISPUTED):
            return LifecycleState.ISSUES, f"payment_{s.payment_status.value.lower()}"
        if s.verification_status in (
            VerificationStatus.REJECTED,
            VerificationStatus.DISPUTE_REVIEW,
        ):
            return LifecycleState.ISSUES, f"verification_{s.verification_status.value.lower()}"
        if s.has_open_claim:
            return LifecycleState.ISSUES, "open_claim"

        if s.status == BookingStatus.ON_HOLD:
            return LifecycleState.ON_HOLD, "status_on_hold"
        if self._verification_overdue(s, at):
            return LifecycleState.ON_HOLD, "verification_overdue"

        if (
            s.trip_ended_at is not None
            or s.trip_status == TripStatus.ENDED
            or s.status == BookingStatus.COMPLETED
        ):
            return LifecycleState.COMPLETED, "trip_ended"

        if (
            s.trip_started_at is not None
            or s.trip_status == TripStatus.IN_PROGRESS
            or s.status == BookingStatus.ACTIVE
        ):
            return LifecycleState.ACTIVE, "trip_started"

        if s.status == BookingStatus.CONFIRMED and (
            s.payment_status == PaymentStatus.PAID or s.onboarding_completed_at is not None
        ):
            return LifecycleState.CONFIRMED, "confirmed_and_captured"

        if (
            s.status == BookingStatus.PENDING
            and s.verification_status == VerificationStatus.APPROVED
        ):
            return LifecycleState.VERIFIED, "verification_approved"

        return LifecycleState.PENDING, "fallback"

    def _closed_without_trip(self, s: LifecycleSignals, at: dt.datetime) -> bool:
        if s.trip_started_at is not None or s.return_at is None:
            return False
        if at < s.return_at:
            return False
        return s.trip_status == TripStatus.CLOSED_NO_TRIP or s.status == BookingStatus.COMPLETED

    def _verification_overdue(self, s: LifecycleSignals, at: dt.datetime) -> bool:
        if not s.verification_required:
            return False
        if s.verification_status == VerificationStatus.APPROVED:
            return False
        # Documents awaiting review is normal pending review, not a hold
        if s.documents_submitted_at is not None or (
            s.verification_status == VerificationStatus.SUBMITTED
        ):
            return False

        deadline = s.verification_deadline
        if deadline is None and s.created_at is not None:
            try:
                deadline = s.created_at + self.verification_grace
            except OverflowError:
                return False
        return deadline is not None and at >= deadline


def is_cancellable(state: LifecycleState) -> bool:
    """Whether a booking in ``state`` may still be cancelled."""
    return state not in NON_CANCELLABLE_STATES


def resolve_lifecycle_state(snapshot: BookingSnapshot, at: dt.datetime) -> LifecycleState:
    """Resolve a snapshot's lifecycle state with the default settings."""
    return LifecycleResolver().resolve(snapshot, at)
