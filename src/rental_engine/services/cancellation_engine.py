"""Cancellation reconciliation engine.

Computes, for one booking and one cancellation instant, exactly how much
money goes back to each funding source and how much is kept.

Order of checks (first failure wins, nothing is partially returned):
1. Timing - the instant is aware, not before booking creation, and not
   beyond the booking's return time plus the configured horizon
2. Lifecycle - active, completed or cancelled bookings cannot be cancelled
3. Funding - the snapshot's money fields reconcile to the cent

Pure computation: the caller persists the result and sends the refund
instructions to the gateway and ledger.
"""

import datetime as dt
from functools import lru_cache

from ..config import EngineSettings, get_settings
from ..models import (
    BookingSnapshot,
    CancellationError,
    DataIntegrityError,
    ErrorCode,
    InvalidStateTransitionError,
    LifecycleState,
    RefundResult,
    TimingInputError,
)
from ..utils.logging import get_logger, log_refund_calculation
from ..utils.timing import is_aware, to_utc
from .lifecycle_resolver import LifecycleResolver, is_cancellable
from .refund_policy_service import RefundPolicyService
from .source_distributor import SourceDistributor

logger = get_logger(__name__)


class CancellationEngine:
    """Service for reconciling booking cancellations.

    Usage:
        engine = get_cancellation_engine()
        result = engine.calculate_refund(snapshot, cancelled_at=request_time)
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        resolver: LifecycleResolver | None = None,
        policy: RefundPolicyService | None = None,
        distributor: SourceDistributor | None = None,
    ) -> None:
        """Initialize the engine and its collaborators.

        Args:
            settings: Engine settings; defaults to the environment settings
            resolver: Lifecycle resolver
            policy: Cancellation tier policy
            distributor: Source distributor
        """
        self.settings = settings or get_settings()
        self.resolver = resolver or LifecycleResolver(self.settings)
        self.policy = policy or RefundPolicyService(self.settings)
        self.distributor = distributor or SourceDistributor()
        self.horizon = dt.timedelta(days=self.settings.max_cancellation_horizon_days)

    def can_cancel(self, snapshot: BookingSnapshot, at: dt.datetime) -> bool:
        """Whether the booking may still be cancelled at ``at``."""
        return is_cancellable(self.resolver.resolve(snapshot, at))

    def calculate_refund(
        self, snapshot: BookingSnapshot, cancelled_at: dt.datetime
    ) -> RefundResult:
        """Reconcile a cancellation requested at ``cancelled_at``.

        Args:
            snapshot: Booking snapshot read in one consistent transaction
            cancelled_at: Instant the guest or operator requested cancellation

        Returns:
            RefundResult with the full per-source breakdown

        Raises:
            TimingInputError: If the instant is naive or outside the booking timeline
            InvalidStateTransitionError: If the booking is active, completed or cancelled
            DataIntegrityError: If the funding mix does not reconcile
        """
        try:
            self._check_timing(snapshot, cancelled_at)
            state = self.resolver.resolve(snapshot, cancelled_at)
            if not is_cancellable(state):
                raise InvalidStateTransitionError(
                    {"booking_id": snapshot.booking_id, "state": state.value}
                )
            result = self._reconcile(snapshot, cancelled_at)
        except CancellationError as e:
            self._log_rejection("calculate_refund", snapshot, e)
            raise

        log_refund_calculation(
            logger,
            "calculate_refund",
            booking_id=snapshot.booking_id,
            tier=result.tier.value,
            refund_cents=result.refund_amount,
            penalty_cents=result.penalty_amount,
            card_cents=result.total_card_return,
        )
        return result

    def recalculate_for_audit(self, snapshot: BookingSnapshot) -> RefundResult:
        """Re-evaluate an already cancelled booking at its recorded instant.

        Used by support tooling to explain a past refund. The lifecycle gate
        is skipped because the booking is, by definition, cancelled.

        Raises:
            CancellationError: With NOT_CANCELLED if the booking has no
                recorded cancellation instant or is not cancelled
            TimingInputError: If the recorded instant is out of range
            DataIntegrityError: If the funding mix does not reconcile
        """
        cancelled_at = snapshot.cancelled_at
        try:
            state = (
                self.resolver.resolve(snapshot, cancelled_at)
                if cancelled_at is not None
                else None
            )
            if cancelled_at is None or state != LifecycleState.CANCELLED:
                raise CancellationError(
                    {"booking_id": snapshot.booking_id}, code=ErrorCode.NOT_CANCELLED
                )
            self._check_timing(snapshot, cancelled_at)
            result = self._reconcile(snapshot, cancelled_at)
        except CancellationError as e:
            self._log_rejection("recalculate_for_audit", snapshot, e)
            raise

        log_refund_calculation(
            logger,
            "recalculate_for_audit",
            booking_id=snapshot.booking_id,
            tier=result.tier.value,
            refund_cents=result.refund_amount,
            penalty_cents=result.penalty_amount,
        )
        return result

    def _check_timing(self, snapshot: BookingSnapshot, cancelled_at: dt.datetime) -> None:
        if not isinstance(cancelled_at, dt.datetime) or not is_aware(cancelled_at):
            raise TimingInputError(
                {"booking_id": snapshot.booking_id, "reason": "naive_or_invalid_instant"}
            )
        instant = to_utc(cancelled_at)
        if instant < to_utc(snapshot.created_at):
            raise TimingInputError(
                {
                    "booking_id": snapshot.booking_id,
                    "reason": "before_creation",
                    "cancelled_at": cancelled_at.isoformat(),
                }
            )
        try:
            latest = to_utc(snapshot.return_at) + self.horizon
        except OverflowError:
            raise TimingInputError(
                {
                    "booking_id": snapshot.booking_id,
                    "reason": "return_out_of_range",
                    "return_at": snapshot.return_at.isoformat(),
                }
            ) from None
        if instant > latest:
            raise TimingInputError(
                {
                    "booking_id": snapshot.booking_id,
                    "reason": "beyond_horizon",
                    "cancelled_at": cancelled_at.isoformat(),
                }
            )

    def _card_contribution(self, snapshot: BookingSnapshot) -> tuple[int, int]:
        """Check the funding mix and return (card share of subtotal, validation charge)."""
        credits = snapshot.credits_applied
        bonus = snapshot.bonus_applied
        expected_total = snapshot.subtotal + snapshot.non_refundable_fees + snapshot.taxes

        def reject(reason: str, **values: int) -> DataIntegrityError:
            details = {"booking_id": snapshot.booking_id, "reason": reason}
            details.update({k: str(v) for k, v in values.items()})
            return DataIntegrityError(details)

        if credits + bonus > snapshot.subtotal:
            raise reject(
                "promotions_exceed_subtotal",
                credits=credits,
                bonus=bonus,
                subtotal=snapshot.subtotal,
            )
        if snapshot.total_amount != expected_total:
            raise reject(
                "total_does_not_match_components",
                total_amount=snapshot.total_amount,
                expected=expected_total,
            )

        if snapshot.is_validation_charge:
            if credits + bonus != snapshot.total_amount:
                raise reject(
                    "validation_charge_without_full_coverage",
                    credits=credits,
                    bonus=bonus,
                    total_amount=snapshot.total_amount,
                )
            if not 0 < snapshot.card_charged <= self.settings.max_validation_charge_cents:
                raise reject(
                    "validation_charge_out_of_range",
                    card_charged=snapshot.card_charged,
                    maximum=self.settings.max_validation_charge_cents,
                )
            return 0, snapshot.card_charged

        if credits + bonus + snapshot.card_charged != snapshot.total_amount:
            raise reject(
                "funding_does_not_match_total",
                credits=credits,
                bonus=bonus,
                card_charged=snapshot.card_charged,
                total_amount=snapshot.total_amount,
            )
        return snapshot.subtotal - credits - bonus, 0

    def _reconcile(self, snapshot: BookingSnapshot, cancelled_at: dt.datetime) -> RefundResult:
        # Stored in UTC so a retry sent with another offset yields an identical result
        cancelled_at = to_utc(cancelled_at)
        tier = self.policy.calculate_tier(snapshot.subtotal, snapshot.pickup_at, cancelled_at)
        card_share, validation_charge = self._card_contribution(snapshot)

        allocation = self.distributor.distribute(
            subtotal=snapshot.subtotal,
            penalty_amount=tier["penalty_amount"],
            credits=snapshot.credits_applied,
            bonus=snapshot.bonus_applied,
            card=card_share,
            deposit_amount=snapshot.deposit_amount,
            deposit_from_wallet=snapshot.deposit_from_wallet,
            deposit_from_card=snapshot.deposit_from_card,
            validation_charge=validation_charge,
        )

        return RefundResult(
            booking_id=snapshot.booking_id,
            cancelled_at=cancelled_at,
            tier=tier["tier"],
            tier_label=self.policy.tier_label(tier["tier"]),
            tier_description=tier["description"],
            penalty_percentage=tier["penalty_percentage"],
            hours_until_pickup=tier["hours_until_pickup"],
            subtotal=snapshot.subtotal,
            refund_amount=tier["refund_amount"],
            penalty_amount=tier["penalty_amount"],
            non_refundable_fees=snapshot.non_refundable_fees,
            taxes_retained=snapshot.taxes,
            credits_restored=allocation.credits_restored,
            bonus_restored=allocation.bonus_restored,
            card_refund=allocation.card_refund,
            validation_charge_refund=allocation.validation_charge_refund,
            deposit_from_wallet=allocation.deposit_from_wallet,
            deposit_from_card=allocation.deposit_from_card,
            penalty_from_credits=allocation.penalty_from_credits,
            penalty_from_bonus=allocation.penalty_from_bonus,
            penalty_from_card=allocation.penalty_from_card,
        )

    def _log_rejection(
        self, operation: str, snapshot: BookingSnapshot, error: CancellationError
    ) -> None:
        if isinstance(error, DataIntegrityError):
            log_refund_calculation(
                logger,
                operation,
                booking_id=snapshot.booking_id,
                error=str(error),
                error_code=error.code.value,
            )
        else:
            logger.warning(
                "Refund calculation rejected: %s | booking_id=%s | error_code=%s | %s",
                operation,
                snapshot.booking_id,
                error.code.value,
                error,
            )


@lru_cache(maxsize=1)
def get_cancellation_engine() -> CancellationEngine:
    """Get the shared CancellationEngine instance (singleton pattern).

    Returns:
        CancellationEngine: Shared engine built from environment settings.
    """
    return CancellationEngine()
