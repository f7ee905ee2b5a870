"""Source distributor for cancellation refunds.

Splits a resolved penalty across the sources that funded the rental
subtotal (credits, bonus, card) in proportion to what each contributed. A
guest who paid 40% of the subtotal with credits absorbs 40% of the penalty
from credits and gets 40% of the refund back as restored credits.

Cent remainders are handed out with the largest-remainder method, so each
source's share is within one cent of its exact proportion, never exceeds
its contribution, and the shares add up to the penalty exactly.

The deposit is never penalized; it is released in its original
wallet/card split. A minimum validation charge is returned in full on top
of the card refund.
"""

from typing import NoReturn

from ..models import DataIntegrityError, SourceAllocation
from ..utils.logging import get_logger
from ..utils.money import allocate_proportionally

logger = get_logger(__name__)


class SourceDistributor:
    """Allocates refund and penalty amounts across funding sources."""

    def distribute(
        self,
        *,
        subtotal: int,
        penalty_amount: int,
        credits: int,
        bonus: int,
        card: int,
        deposit_amount: int = 0,
        deposit_from_wallet: int = 0,
        deposit_from_card: int = 0,
        validation_charge: int = 0,
    ) -> SourceAllocation:
        """Distribute the penalty and refund of a subtotal across sources.

        Args:
            subtotal: Rental subtotal in cents
            penalty_amount: Penalty resolved for the subtotal in cents
            credits: Part of the subtotal funded by promotional credits
            bonus: Part of the subtotal funded by promotional bonus
            card: Part of the subtotal funded by the card
            deposit_amount: Security deposit in cents
            deposit_from_wallet: Part of the deposit held from the wallet balance
            deposit_from_card: Part of the deposit held on the card
            validation_charge: Nominal card authorization to return in full

        Returns:
            SourceAllocation with per-source refunds and penalty shares

        Raises:
            DataIntegrityError: If any amount is negative, the contributions do
                not add up to the subtotal, the penalty exceeds the subtotal, or
                the deposit split does not add up to the deposit.
        """
        amounts = {
            "subtotal": subtotal,
            "penalty_amount": penalty_amount,
            "credits": credits,
            "bonus": bonus,
            "card": card,
            "deposit_amount": deposit_amount,
            "deposit_from_wallet": deposit_from_wallet,
            "deposit_from_card": deposit_from_card,
            "validation_charge": validation_charge,
        }
        negative = {k: str(v) for k, v in amounts.items() if v < 0}
        if negative:
            self._reject("negative_amount", negative)

        if credits + bonus + card != subtotal:
            self._reject(
                "contributions_do_not_match_subtotal",
                {
                    "credits": str(credits),
                    "bonus": str(bonus),
                    "card": str(card),
                    "subtotal": str(subtotal),
                },
            )
        if penalty_amount > subtotal:
            self._reject(
                "penalty_exceeds_subtotal",
                {"penalty_amount": str(penalty_amount), "subtotal": str(subtotal)},
            )
        if deposit_from_wallet + deposit_from_card != deposit_amount:
            self._reject(
                "deposit_split_does_not_match",
                {
                    "deposit_amount": str(deposit_amount),
                    "deposit_from_wallet": str(deposit_from_wallet),
                    "deposit_from_card": str(deposit_from_card),
                },
            )

        penalty_credits, penalty_bonus, penalty_card = allocate_proportionally(
            penalty_amount, [credits, bonus, card]
        )

        return SourceAllocation(
            credits_restored=credits - penalty_credits,
            bonus_restored=bonus - penalty_bonus,
            card_refund=card - penalty_card + validation_charge,
            penalty_from_credits=penalty_credits,
            penalty_from_bonus=penalty_bonus,
            penalty_from_card=penalty_card,
            validation_charge_refund=validation_charge,
            deposit_from_wallet=deposit_from_wallet,
            deposit_from_card=deposit_from_card,
        )

    def _reject(self, reason: str, details: dict[str, str]) -> NoReturn:
        logger.error(
            "Funding mix rejected: %s | %s",
            reason,
            " | ".join(f"{k}={v}" for k, v in details.items()),
        )
        raise DataIntegrityError({"reason": reason, **details})
