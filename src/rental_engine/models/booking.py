"""Booking snapshot model: one rental booking at the instant of evaluation."""

import datetime as dt
from collections.abc import Mapping
from enum import Enum
from typing import Any, TypeVar

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, model_validator

from ..utils.money import dollars_to_cents, divide_half_even
from .enums import BookingStatus, PaymentStatus, TripStatus, VerificationStatus

_E = TypeVar("_E", bound=Enum)


class BookingSnapshot(BaseModel):
    """Immutable view of a booking used by the lifecycle and refund services.

    All amounts are in cents. Funding-mix fields are required and zeroable:
    a booking paid entirely by card has ``credits_applied=0``, never a
    missing value.

    ``credits_applied`` and ``bonus_applied`` are the parts of the rental
    subtotal funded by promotional balances. ``card_charged`` is what the
    card was charged for the booking itself (deposit excluded); when
    ``is_validation_charge`` is set it is only the nominal authorization.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    # Identity
    booking_id: str = Field(..., min_length=1, description="Booking ID")
    booking_code: str = Field(..., description="Display reference")

    # Lifecycle signals
    status: BookingStatus = Field(..., description="Primary booking status")
    verification_status: VerificationStatus = Field(
        default=VerificationStatus.NOT_STARTED
    )
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    trip_status: TripStatus = Field(default=TripStatus.NOT_STARTED)
    verification_required: bool = Field(
        default=False, description="Identity verification must be completed"
    )
    has_open_claim: bool = Field(
        default=False, description="An open damage claim or dispute exists"
    )
    created_at: AwareDatetime = Field(..., description="Booking creation instant")
    documents_submitted_at: AwareDatetime | None = None
    onboarding_completed_at: AwareDatetime | None = None
    verification_deadline: AwareDatetime | None = Field(
        default=None, description="Explicit verification grace deadline"
    )
    trip_started_at: AwareDatetime | None = None
    trip_ended_at: AwareDatetime | None = None
    cancelled_at: AwareDatetime | None = None

    # Schedule
    pickup_at: AwareDatetime = Field(..., description="Pickup instant")
    return_at: AwareDatetime = Field(..., description="Return instant")
    rental_days: int = Field(..., ge=1, description="Number of rental days")

    # Money (cents)
    subtotal: int = Field(..., ge=0, description="Daily rate x days")
    service_fee: int = Field(default=0, ge=0)
    insurance_fee: int = Field(default=0, ge=0)
    delivery_fee: int = Field(default=0, ge=0)
    taxes: int = Field(default=0, ge=0)
    total_amount: int = Field(..., ge=0, description="Total booking amount")
    deposit_amount: int = Field(default=0, ge=0)

    # Funding mix (cents)
    credits_applied: int = Field(..., ge=0)
    bonus_applied: int = Field(..., ge=0)
    card_charged: int = Field(..., ge=0)
    deposit_from_wallet: int = Field(..., ge=0)
    deposit_from_card: int = Field(..., ge=0)
    is_validation_charge: bool = Field(
        default=False,
        description="Card charge is only a minimum instrument validation",
    )
    card_brand: str | None = None
    card_last4: str | None = Field(default=None, pattern=r"^\d{4}$")

    @model_validator(mode="after")
    def _check_schedule(self) -> "BookingSnapshot":
        if self.return_at <= self.pickup_at:
            raise ValueError("return_at must be after pickup_at")
        return self

    @property
    def non_refundable_fees(self) -> int:
        """Service, insurance and delivery fees; never returned."""
        return self.service_fee + self.insurance_fee + self.delivery_fee

    @property
    def daily_rate(self) -> int:
        """Average daily rate in cents."""
        return divide_half_even(self.subtotal, self.rental_days)

    @property
    def card_label(self) -> str | None:
        """Display label such as ``Visa •••• 4242``."""
        if not self.card_brand or not self.card_last4:
            return None
        return f"{self.card_brand.capitalize()} •••• {self.card_last4}"

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        tzinfo: dt.tzinfo | None = None,
    ) -> "BookingSnapshot":
        """Build a snapshot from a persisted booking record.

        Accepts the booking API's camelCase keys with dollar amounts. This is
        the only place where absent funding fields become zero.

        Args:
            record: Booking record as returned by the bookings API
            tzinfo: Timezone for date-only pickup/return values and naive
                timestamps. Defaults to the policy timezone.

        Returns:
            A validated BookingSnapshot.

        Raises:
            pydantic.ValidationError: If required fields are missing or invalid.
            ValueError: If a money amount is not a number.
        """
        if tzinfo is None:
            from ..config import get_settings

            tzinfo = get_settings().tzinfo

        def money(key: str) -> int:
            value = record.get(key)
            return 0 if value is None or value == "" else dollars_to_cents(value)

        days = record.get("numberOfDays") or 1
        subtotal = (
            money("subtotal")
            if record.get("subtotal") not in (None, "", 0, "0")
            else dollars_to_cents(record.get("dailyRate") or 0) * int(days)
        )
        credits = money("creditsApplied")
        bonus = money("bonusApplied")
        total = money("totalAmount")
        if record.get("chargeAmount") is None:
            card_charged = max(total - credits - bonus, 0)
        else:
            card_charged = money("chargeAmount")

        deposit = money("depositAmount")
        from_wallet = money("depositFromWallet")
        from_card = money("depositFromCard")
        if from_wallet == 0 and from_card == 0:
            from_card = deposit

        validation_flag = record.get("isValidationCharge")
        if validation_flag is None:
            validation_flag = credits + bonus >= total > 0 and card_charged > 0

        data: dict[str, Any] = {
            "booking_id": str(record["id"]),
            "booking_code": str(record.get("bookingCode") or record["id"]),
            "status": parse_enum(BookingStatus, record.get("status"), BookingStatus.PENDING),
            "verification_status": parse_enum(
                VerificationStatus,
                record.get("verificationStatus"),
                VerificationStatus.NOT_STARTED,
            ),
            "payment_status": parse_enum(
                PaymentStatus, record.get("paymentStatus"), PaymentStatus.PENDING
            ),
            "trip_status": parse_enum(
                TripStatus, record.get("tripStatus"), TripStatus.NOT_STARTED
            ),
            "verification_required": parse_flag(record.get("verificationRequired")),
            "has_open_claim": parse_flag(record.get("hasOpenClaim")),
            "created_at": parse_instant(record.get("createdAt"), tzinfo),
            "documents_submitted_at": parse_instant(
                record.get("documentsSubmittedAt"), tzinfo
            ),
            "onboarding_completed_at": parse_instant(
                record.get("onboardingCompletedAt"), tzinfo
            ),
            "verification_deadline": parse_instant(
                record.get("verificationDeadline"), tzinfo
            ),
            "trip_started_at": parse_instant(record.get("tripStartedAt"), tzinfo),
            "trip_ended_at": parse_instant(record.get("tripEndedAt"), tzinfo),
            "cancelled_at": parse_instant(record.get("cancelledAt"), tzinfo),
            "pickup_at": parse_schedule(
                record, "pickupAt", "startDate", "startTime", tzinfo
            ),
            "return_at": parse_schedule(record, "returnAt", "endDate", "endTime", tzinfo),
            "rental_days": int(days),
            "subtotal": subtotal,
            "service_fee": money("serviceFee"),
            "insurance_fee": money("insuranceFee"),
            "delivery_fee": money("deliveryFee"),
            "taxes": money("taxes"),
            "total_amount": total,
            "deposit_amount": deposit,
            "credits_applied": credits,
            "bonus_applied": bonus,
            "card_charged": card_charged,
            "deposit_from_wallet": from_wallet,
            "deposit_from_card": from_card,
            "is_validation_charge": parse_flag(validation_flag),
            "card_brand": record.get("cardBrand") or None,
            "card_last4": str(record["cardLast4"]) if record.get("cardLast4") else None,
        }
        return cls(**data)


def parse_enum(enum_cls: type[_E], raw: Any, default: _E) -> _E:
    """Map a raw status string onto an enum; unknown values mean "not yet true"."""
    if isinstance(raw, enum_cls):
        return raw
    if not isinstance(raw, str):
        return default
    try:
        return enum_cls(raw.strip().upper())
    except ValueError:
        return default


def parse_flag(raw: Any) -> bool:
    """Read a boolean record flag; only true values and "true"/"1"/"yes" strings count."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int):
        return raw == 1
    if isinstance(raw, str):
        return raw.strip().lower() in {"true", "1", "yes"}
    return False


def parse_instant(raw: Any, tzinfo: dt.tzinfo) -> dt.datetime | None:
    """Parse an ISO timestamp; naive values are read in ``tzinfo``."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, dt.datetime):
        value = raw
    elif isinstance(raw, str):
        try:
            value = dt.datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=tzinfo)
    return value


def parse_schedule(
    record: Mapping[str, Any],
    instant_key: str,
    date_key: str,
    time_key: str,
    tzinfo: dt.tzinfo,
) -> dt.datetime | None:
    """Read a pickup/return instant from an ISO key or a local date + time pair."""
    instant = parse_instant(record.get(instant_key), tzinfo)
    if instant is not None:
        return instant

    raw_date = record.get(date_key)
    if not raw_date:
        return None
    raw_time = record.get(time_key) or "10:00"
    try:
        day = dt.date.fromisoformat(str(raw_date)[:10])
        clock = dt.time.fromisoformat(str(raw_time))
    except ValueError:
        return None
    return dt.datetime.combine(day, clock, tzinfo=tzinfo)
