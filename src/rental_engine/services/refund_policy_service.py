"""Refund policy service for resolving the cancellation tier.

Implements the guest cancellation policy for the rental subtotal:
- Free (0% penalty): cancel 72+ hours before pickup
- Moderate (25% penalty): cancel 24-72 hours before pickup
- Late (50% penalty): cancel less than 24 hours before pickup
- No refund (100% penalty): cancel at or after pickup

Hours are counted on the wall clock of the policy timezone, so a window
that spans a DST change still ends at the same local time of day.

All amounts are in cents to avoid floating-point issues.
"""

import datetime as dt
from dataclasses import dataclass

from ..config import EngineSettings, get_settings
from ..models import CancellationPolicyTier, PolicyConfigurationError, TierCalculation
from ..utils.money import percent_of
from ..utils.timing import local_threshold, to_hours, to_utc, wall_clock_delta

TIER_LABELS: dict[CancellationPolicyTier, str] = {
    CancellationPolicyTier.FREE: "Free cancellation",
    CancellationPolicyTier.MODERATE: "Moderate cancellation",
    CancellationPolicyTier.LATE: "Late cancellation",
    CancellationPolicyTier.NO_REFUND: "No refund",
}


@dataclass(frozen=True)
class PolicyBracket:
    """One step of the tier table.

    A cancellation falls in the first bracket whose ``min_hours`` it meets.
    ``inclusive`` controls whether exactly ``min_hours`` belongs to this
    bracket.
    """

    tier: CancellationPolicyTier
    min_hours: int
    penalty_percentage: int
    inclusive: bool = True

    def matches(self, cancelled_at: dt.datetime, threshold: dt.datetime) -> bool:
        """Whether a cancellation at ``cancelled_at`` falls in this bracket.

        Both instants must be in UTC; ``threshold`` is the real instant at
        which the local clock reads ``min_hours`` before pickup.
        """
        return cancelled_at <= threshold if self.inclusive else cancelled_at < threshold


class RefundPolicyService:
    """Service for resolving the cancellation tier and penalty split.

    The tier table is a step function over remaining hours: thresholds
    strictly decrease and penalties never decrease, so cancelling later can
    never cost less than cancelling earlier.
    """

    def __init__(self, settings: EngineSettings | None = None) -> None:
        """Initialize with a tier table built from settings.

        Args:
            settings: Engine settings; defaults to the environment settings

        Raises:
            PolicyConfigurationError: If the table is not monotonic.
        """
        self.settings = settings or get_settings()
        self.tzinfo = self.settings.tzinfo
        self.brackets: tuple[PolicyBracket, ...] = (
            PolicyBracket(CancellationPolicyTier.FREE, self.settings.free_window_hours, 0),
            PolicyBracket(
                CancellationPolicyTier.MODERATE,
                self.settings.moderate_window_hours,
                self.settings.moderate_penalty_percent,
            ),
            PolicyBracket(
                CancellationPolicyTier.LATE,
                0,
                self.settings.late_penalty_percent,
                inclusive=False,
            ),
        )
        self._validate_table()

    def _validate_table(self) -> None:
        previous_hours: int | None = None
        previous_penalty = -1
        for bracket in self.brackets:
            if not 0 <= bracket.penalty_percentage <= 100:
                raise PolicyConfigurationError(
                    {"tier": bracket.tier.value, "penalty": str(bracket.penalty_percentage)}
                )
            if previous_hours is not None and bracket.min_hours >= previous_hours:
                raise PolicyConfigurationError(
                    {"tier": bracket.tier.value, "min_hours": str(bracket.min_hours)}
                )
            if bracket.penalty_percentage < previous_penalty:
                raise PolicyConfigurationError(
                    {"tier": bracket.tier.value, "penalty": str(bracket.penalty_percentage)}
                )
            previous_hours = bracket.min_hours
            previous_penalty = bracket.penalty_percentage

    def resolve_tier(
        self, pickup_at: dt.datetime, cancelled_at: dt.datetime
    ) -> tuple[CancellationPolicyTier, int]:
        """Map a cancellation instant to a tier.

        Each bracket threshold is turned into the real instant at which the
        policy clock reads that many hours before pickup, and the
        cancellation instant is compared against it. An earlier request can
        therefore never land in a costlier tier than a later one, even
        during the repeated hour at the end of DST.

        Args:
            pickup_at: Pickup instant
            cancelled_at: Cancellation instant

        Returns:
            Tuple of (tier, penalty_percentage)
        """
        cancelled_utc = to_utc(cancelled_at)
        for bracket in self.brackets:
            threshold = local_threshold(pickup_at, bracket.min_hours, self.tzinfo)
            if bracket.matches(cancelled_utc, threshold):
                return bracket.tier, bracket.penalty_percentage
        return CancellationPolicyTier.NO_REFUND, 100

    def calculate_tier(
        self,
        subtotal: int,
        pickup_at: dt.datetime,
        cancelled_at: dt.datetime,
    ) -> TierCalculation:
        """Calculate the penalty and refund split of the subtotal.

        The penalty is rounded half-even to whole cents and the refund is
        whatever is left, so refund + penalty always equals the subtotal.

        Args:
            subtotal: Rental subtotal in cents
            pickup_at: Pickup instant
            cancelled_at: Instant the cancellation was requested

        Returns:
            TierCalculation with tier, amounts and description
        """
        tier, percentage = self.resolve_tier(pickup_at, cancelled_at)
        remaining = wall_clock_delta(cancelled_at, pickup_at, self.tzinfo)

        penalty_amount = percent_of(subtotal, percentage)
        refund_amount = subtotal - penalty_amount
        hours = to_hours(remaining)

        return TierCalculation(
            tier=tier,
            penalty_percentage=percentage,
            penalty_amount=penalty_amount,
            refund_amount=refund_amount,
            hours_until_pickup=hours,
            description=self._describe(tier, percentage, hours),
        )

    def _describe(self, tier: CancellationPolicyTier, percentage: int, hours: float) -> str:
        if tier == CancellationPolicyTier.NO_REFUND:
            return "No refund: Cancelled at or after pickup time"
        return (
            f"{TIER_LABELS[tier]} ({100 - percentage}% refund): "
            f"Cancelled {hours:g} hours before pickup"
        )

    def tier_label(self, tier: CancellationPolicyTier) -> str:
        """Human-readable name of a tier."""
        return TIER_LABELS[tier]

    def get_policy_description(self) -> str:
        """Get human-readable description of the cancellation policy.

        Returns:
            Policy description text
        """
        free, moderate, late = self.brackets
        return (
            "Cancellation Policy:\n"
            f"• {free.min_hours}+ hours before pickup: Full refund of the rental subtotal\n"
            f"• {moderate.min_hours}-{free.min_hours} hours before pickup: "
            f"{100 - moderate.penalty_percentage}% refund\n"
            f"• Less than {moderate.min_hours} hours before pickup: "
            f"{100 - late.penalty_percentage}% refund\n"
            "• After pickup time: No refund\n"
            "• Service, insurance and delivery fees and taxes are non-refundable\n"
            "• Security deposits are always released in full"
        )
