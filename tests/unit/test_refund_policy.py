"""Unit tests for RefundPolicyService tier resolution.

Tests verify the service maps wall-clock hours before pickup to a tier and
splits the subtotal into refund and penalty:
- Free: 72+ hours before pickup (0% penalty)
- Moderate: 24-72 hours before pickup (25% penalty)
- Late: under 24 hours before pickup (50% penalty)
- No refund: at or after pickup (100% penalty)

Test categories:
- Tier scenarios per bracket
- Boundaries (exact thresholds, zero hours)
- Rounding and conservation
- Monotonicity
- Wall-clock behavior across DST
- Table validation and description
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from rental_engine.config import EngineSettings
from rental_engine.models import CancellationPolicyTier, PolicyConfigurationError
from rental_engine.services.refund_policy_service import RefundPolicyService

from conftest import PICKUP_AT, hours_before_pickup

# === Test Configuration ===

TEST_SUBTOTAL = 30000  # $300.00


@pytest.fixture
def service() -> RefundPolicyService:
    """Policy service with the default tier table."""
    return RefundPolicyService(EngineSettings())


# === Tier Scenarios ===


class TestTierScenarios:
    """Tests for each tier of the policy."""

    def test_free_cancellation_80_hours_before(self, service: RefundPolicyService) -> None:
        """80 hours before pickup gets the full subtotal back."""
        result = service.calculate_tier(TEST_SUBTOTAL, PICKUP_AT, hours_before_pickup(80))

        assert result["tier"] == CancellationPolicyTier.FREE
        assert result["refund_amount"] == 30000
        assert result["penalty_amount"] == 0
        assert result["penalty_percentage"] == 0

    def test_moderate_cancellation_48_hours_before(self, service: RefundPolicyService) -> None:
        """48 hours before pickup keeps 25% of the subtotal."""
        result = service.calculate_tier(TEST_SUBTOTAL, PICKUP_AT, hours_before_pickup(48))

        assert result["tier"] == CancellationPolicyTier.MODERATE
        assert result["penalty_amount"] == 7500
        assert result["refund_amount"] == 22500

    def test_late_cancellation_10_hours_before(self, service: RefundPolicyService) -> None:
        """10 hours before pickup keeps 50% of the subtotal."""
        result = service.calculate_tier(TEST_SUBTOTAL, PICKUP_AT, hours_before_pickup(10))

        assert result["tier"] == CancellationPolicyTier.LATE
        assert result["penalty_amount"] == 15000
        assert result["refund_amount"] == 15000

    def test_no_refund_after_pickup(self, service: RefundPolicyService) -> None:
        """Cancelling after pickup time refunds nothing."""
        result = service.calculate_tier(TEST_SUBTOTAL, PICKUP_AT, hours_before_pickup(-5))

        assert result["tier"] == CancellationPolicyTier.NO_REFUND
        assert result["refund_amount"] == 0
        assert result["penalty_amount"] == TEST_SUBTOTAL
        assert result["hours_until_pickup"] == -5.0


# === Boundaries ===


class TestTierBoundaries:
    """Boundary tests: lower thresholds are inclusive, zero is no-refund."""

    @pytest.mark.parametrize(
        "hours,expected",
        [
            (72, CancellationPolicyTier.FREE),
            (71.99, CancellationPolicyTier.MODERATE),
            (24, CancellationPolicyTier.MODERATE),
            (23.99, CancellationPolicyTier.LATE),
            (0.01, CancellationPolicyTier.LATE),
            (0, CancellationPolicyTier.NO_REFUND),
        ],
    )
    def test_threshold_boundaries(
        self,
        service: RefundPolicyService,
        hours: float,
        expected: CancellationPolicyTier,
    ) -> None:
        """Exactly 72h is free, exactly 24h is moderate, exactly 0h is no refund."""
        result = service.calculate_tier(TEST_SUBTOTAL, PICKUP_AT, hours_before_pickup(hours))

        assert result["tier"] == expected


# === Rounding ===


class TestRounding:
    """Tests for half-even rounding and exact conservation."""

    def test_odd_amount_late_tier(self, service: RefundPolicyService) -> None:
        """50% of an odd cent amount rounds the penalty half-even."""
        result = service.calculate_tier(11111, PICKUP_AT, hours_before_pickup(10))

        # 5555.5 -> 5556 (even)
        assert result["penalty_amount"] == 5556
        assert result["refund_amount"] == 5555

    def test_quarter_amount_moderate_tier(self, service: RefundPolicyService) -> None:
        """25% of 10001 cents is 2500.25, rounded to 2500."""
        result = service.calculate_tier(10001, PICKUP_AT, hours_before_pickup(30))

        assert result["penalty_amount"] == 2500
        assert result["refund_amount"] == 7501

    @pytest.mark.parametrize("subtotal", [0, 1, 3, 999, 10001, 33333, 123457])
    @pytest.mark.parametrize("hours", [100, 50, 12, -1])
    def test_refund_plus_penalty_equals_subtotal(
        self, service: RefundPolicyService, subtotal: int, hours: int
    ) -> None:
        """Refund and penalty always add up to the subtotal to the cent."""
        result = service.calculate_tier(subtotal, PICKUP_AT, hours_before_pickup(hours))

        assert result["refund_amount"] + result["penalty_amount"] == subtotal
        assert result["refund_amount"] >= 0
        assert result["penalty_amount"] >= 0


# === Monotonicity ===


class TestMonotonicity:
    """Cancelling earlier never costs more than cancelling later."""

    def test_penalty_non_increasing_in_hours_remaining(
        self, service: RefundPolicyService
    ) -> None:
        """Penalty never increases as hours before pickup increase."""
        penalties = [
            service.calculate_tier(TEST_SUBTOTAL, PICKUP_AT, hours_before_pickup(h))[
                "penalty_amount"
            ]
            for h in range(-48, 200)
        ]

        for earlier_cancel, later_cancel in zip(penalties[1:], penalties[:-1]):
            assert earlier_cancel <= later_cancel


# === Wall-Clock Time ===


class TestWallClock:
    """Windows are counted on the policy timezone's wall clock."""

    def test_dst_spring_forward_uses_local_clock(self) -> None:
        """72 local hours before pickup is free even when only 71 real hours remain."""
        los_angeles = ZoneInfo("America/Los_Angeles")
        service = RefundPolicyService(EngineSettings(policy_timezone="America/Los_Angeles"))
        # DST starts 2026-03-08 at 02:00 local
        pickup = datetime(2026, 3, 10, 10, 0, tzinfo=los_angeles)
        cancelled = datetime(2026, 3, 7, 10, 0, tzinfo=los_angeles)

        assert pickup.astimezone(timezone.utc) - cancelled.astimezone(timezone.utc) == (
            timedelta(hours=71)
        )
        result = service.calculate_tier(TEST_SUBTOTAL, pickup, cancelled)

        assert result["tier"] == CancellationPolicyTier.FREE
        assert result["hours_until_pickup"] == 72.0

    def test_dst_fall_back_uses_local_clock(self) -> None:
        """24 local hours before pickup stays moderate across the fall-back hour."""
        los_angeles = ZoneInfo("America/Los_Angeles")
        service = RefundPolicyService(EngineSettings(policy_timezone="America/Los_Angeles"))
        # DST ends 2026-11-01 at 02:00 local
        pickup = datetime(2026, 11, 1, 10, 0, tzinfo=los_angeles)
        cancelled = datetime(2026, 10, 31, 10, 0, tzinfo=los_angeles)

        assert pickup.astimezone(timezone.utc) - cancelled.astimezone(timezone.utc) == (
            timedelta(hours=25)
        )
        result = service.calculate_tier(TEST_SUBTOTAL, pickup, cancelled)

        assert result["tier"] == CancellationPolicyTier.MODERATE
        assert result["hours_until_pickup"] == 24.0

    def test_repeated_fall_back_hour_follows_real_time(self) -> None:
        """During the repeated 01:00 hour the second reading is the later instant."""
        new_york = ZoneInfo("America/New_York")
        service = RefundPolicyService(EngineSettings(policy_timezone="America/New_York"))
        # DST ends 2026-11-01 at 02:00 EDT; 01:00-01:59 happens twice
        pickup = datetime(2026, 11, 4, 1, 20, tzinfo=new_york)
        first_0110 = datetime(2026, 11, 1, 1, 10, tzinfo=new_york)  # EDT
        first_0130 = datetime(2026, 11, 1, 1, 30, tzinfo=new_york)  # EDT
        second_0110 = datetime(2026, 11, 1, 1, 10, fold=1, tzinfo=new_york)  # EST

        assert service.calculate_tier(TEST_SUBTOTAL, pickup, first_0110)["tier"] == (
            CancellationPolicyTier.FREE
        )
        earlier = service.calculate_tier(TEST_SUBTOTAL, pickup, first_0130)
        later = service.calculate_tier(TEST_SUBTOTAL, pickup, second_0110)

        assert earlier["tier"] == CancellationPolicyTier.MODERATE
        assert earlier["penalty_amount"] <= later["penalty_amount"]

    def test_penalty_non_decreasing_through_fall_back_night(self) -> None:
        """Walking the DST change minute by minute never lowers the penalty."""
        service = RefundPolicyService(EngineSettings(policy_timezone="America/New_York"))
        pickup = datetime(2026, 11, 4, 1, 20, tzinfo=ZoneInfo("America/New_York"))
        # 2026-11-01 00:00 EDT to 03:00 EST
        start = datetime(2026, 11, 1, 4, 0, tzinfo=timezone.utc)

        penalties = [
            service.calculate_tier(
                TEST_SUBTOTAL, pickup, start + timedelta(minutes=5 * step)
            )["penalty_amount"]
            for step in range(49)
        ]

        for earlier, later in zip(penalties, penalties[1:]):
            assert earlier <= later

    def test_request_timezone_does_not_matter(self, service: RefundPolicyService) -> None:
        """The same instant expressed in another zone resolves identically."""
        in_phoenix = hours_before_pickup(30)
        in_tokyo = in_phoenix.astimezone(ZoneInfo("Asia/Tokyo"))

        assert service.calculate_tier(TEST_SUBTOTAL, PICKUP_AT, in_phoenix) == (
            service.calculate_tier(TEST_SUBTOTAL, PICKUP_AT, in_tokyo)
        )


# === Table Validation ===


class TestPolicyTable:
    """Tests for tier table validation and descriptions."""

    def test_rejects_non_decreasing_thresholds(self) -> None:
        """A moderate window at least as long as the free window is rejected."""
        with pytest.raises(PolicyConfigurationError):
            RefundPolicyService(
                EngineSettings(free_window_hours=24, moderate_window_hours=24)
            )

    def test_rejects_decreasing_penalties(self) -> None:
        """A later tier may not be cheaper than an earlier one."""
        with pytest.raises(PolicyConfigurationError):
            RefundPolicyService(
                EngineSettings(moderate_penalty_percent=60, late_penalty_percent=50)
            )

    def test_rejects_penalty_above_100(self) -> None:
        """Penalties are percentages of the subtotal."""
        with pytest.raises(PolicyConfigurationError):
            RefundPolicyService(EngineSettings(late_penalty_percent=150))

    def test_custom_table(self) -> None:
        """A custom table is applied as configured."""
        service = RefundPolicyService(
            EngineSettings(
                free_window_hours=48,
                moderate_window_hours=12,
                moderate_penalty_percent=10,
                late_penalty_percent=40,
            )
        )
        result = service.calculate_tier(TEST_SUBTOTAL, PICKUP_AT, hours_before_pickup(20))

        assert result["tier"] == CancellationPolicyTier.MODERATE
        assert result["penalty_amount"] == 3000

    def test_returns_description(self, service: RefundPolicyService) -> None:
        """Result includes a human-readable description."""
        result = service.calculate_tier(TEST_SUBTOTAL, PICKUP_AT, hours_before_pickup(48))

        assert "75% refund" in result["description"]
        assert "48 hours" in result["description"]

    def test_policy_description_lists_tiers(self, service: RefundPolicyService) -> None:
        """The guest-facing policy text lists every window."""
        text = service.get_policy_description()

        assert "72+ hours" in text
        assert "24-72 hours" in text
        assert "75% refund" in text
        assert "50% refund" in text
        assert "deposits are always released" in text
        assert "non-refundable" in text

    def test_tier_labels(self, service: RefundPolicyService) -> None:
        """Every tier has a label."""
        for tier in CancellationPolicyTier:
            assert service.tier_label(tier)
