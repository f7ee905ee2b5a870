"""Refund reconciliation result models.

Amounts are in cents. A RefundResult is the only source for any "what you
get back" breakdown; presentation code must not recompute penalties.
"""

from typing import TypedDict

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, computed_field

from .enums import CancellationPolicyTier, InstructionKind


class TierCalculation(TypedDict):
    """Result of cancellation tier resolution."""

    tier: CancellationPolicyTier
    penalty_percentage: int  # 0-100
    penalty_amount: int  # Amount in cents
    refund_amount: int  # Amount in cents
    hours_until_pickup: float  # Wall-clock hours, may be negative
    description: str


class SourceAllocation(BaseModel):
    """Refund and penalty split across the funding sources of a booking."""

    model_config = ConfigDict(strict=True, frozen=True)

    credits_restored: int = Field(..., ge=0)
    bonus_restored: int = Field(..., ge=0)
    card_refund: int = Field(
        ..., ge=0, description="Tier-based card refund plus any validation charge"
    )
    penalty_from_credits: int = Field(..., ge=0)
    penalty_from_bonus: int = Field(..., ge=0)
    penalty_from_card: int = Field(..., ge=0)
    validation_charge_refund: int = Field(default=0, ge=0)
    deposit_from_wallet: int = Field(..., ge=0)
    deposit_from_card: int = Field(..., ge=0)


class RefundResult(BaseModel):
    """Full reconciliation of a cancellation across every funding source."""

    model_config = ConfigDict(strict=True, frozen=True)

    booking_id: str
    cancelled_at: AwareDatetime
    tier: CancellationPolicyTier
    tier_label: str
    tier_description: str
    penalty_percentage: int = Field(..., ge=0, le=100)
    hours_until_pickup: float

    subtotal: int = Field(..., ge=0)
    refund_amount: int = Field(..., ge=0)
    penalty_amount: int = Field(..., ge=0)
    non_refundable_fees: int = Field(..., ge=0, description="Service + insurance + delivery")
    taxes_retained: int = Field(..., ge=0)

    credits_restored: int = Field(..., ge=0)
    bonus_restored: int = Field(..., ge=0)
    card_refund: int = Field(..., ge=0)
    validation_charge_refund: int = Field(default=0, ge=0)
    deposit_from_wallet: int = Field(..., ge=0)
    deposit_from_card: int = Field(..., ge=0)

    penalty_from_credits: int = Field(..., ge=0)
    penalty_from_bonus: int = Field(..., ge=0)
    penalty_from_card: int = Field(..., ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_card_return(self) -> int:
        """Card refund plus card-funded deposit, as one processor instruction."""
        return self.card_refund + self.deposit_from_card

    @computed_field  # type: ignore[prop-decorator]
    @property
    def deposit_released(self) -> int:
        """Deposit released across wallet and card."""
        return self.deposit_from_wallet + self.deposit_from_card

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_returned(self) -> int:
        """Everything the guest gets back across all sources."""
        return (
            self.total_card_return
            + self.credits_restored
            + self.bonus_restored
            + self.deposit_from_wallet
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_multiple_sources(self) -> bool:
        """Whether promotional balances or the deposit wallet are involved."""
        return (
            self.credits_restored + self.penalty_from_credits > 0
            or self.bonus_restored + self.penalty_from_bonus > 0
            or self.deposit_from_wallet > 0
        )


class RefundInstruction(BaseModel):
    """One money movement for the payment gateway or ledger to apply."""

    model_config = ConfigDict(strict=True, frozen=True)

    kind: InstructionKind
    booking_id: str
    amount: int = Field(..., gt=0, description="Amount in cents")
    idempotency_key: str
    card_label: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
