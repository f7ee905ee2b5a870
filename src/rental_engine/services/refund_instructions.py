"""Translate a RefundResult into money movements for the gateway and ledger.

At most four instructions are produced, always in this order:
card refund, credits restore, bonus restore, deposit-wallet release.
The card-funded part of the deposit travels with the card refund, because
it goes back through the same processor call.

Idempotency keys are derived from the booking, the movement kind, the
amount and the cancellation instant, so retrying the same cancellation
never issues a second refund.
"""

import hashlib

from ..models import InstructionKind, RefundInstruction, RefundResult
from ..utils.timing import to_utc


def instruction_key(result: RefundResult, kind: InstructionKind, amount: int) -> str:
    """Build the deterministic idempotency key for one instruction."""
    instant = to_utc(result.cancelled_at).isoformat()
    payload = "|".join([result.booking_id, kind.value, str(amount), instant]).encode()
    return f"refund_{kind.value}_{hashlib.sha256(payload).hexdigest()[:32]}"


def build_refund_instructions(
    result: RefundResult, card_label: str | None = None
) -> list[RefundInstruction]:
    """Build the gateway and ledger instructions for a cancellation.

    Args:
        result: Reconciled cancellation
        card_label: Display label of the card on file, if known

    Returns:
        Instructions with a positive amount, in fixed order.
    """
    movements: list[tuple[InstructionKind, int, dict[str, str]]] = [
        (
            InstructionKind.CARD_REFUND,
            result.total_card_return,
            {
                "rental_refund": str(result.card_refund - result.validation_charge_refund),
                "validation_charge": str(result.validation_charge_refund),
                "deposit": str(result.deposit_from_card),
            },
        ),
        (
            InstructionKind.CREDITS_RESTORE,
            result.credits_restored,
            {"penalty_absorbed": str(result.penalty_from_credits)},
        ),
        (
            InstructionKind.BONUS_RESTORE,
            result.bonus_restored,
            {"penalty_absorbed": str(result.penalty_from_bonus)},
        ),
        (
            InstructionKind.DEPOSIT_RELEASE,
            result.deposit_from_wallet,
            {"source": "wallet"},
        ),
    ]

    instructions = []
    for kind, amount, metadata in movements:
        if amount <= 0:
            continue
        instructions.append(
            RefundInstruction(
                kind=kind,
                booking_id=result.booking_id,
                amount=amount,
                idempotency_key=instruction_key(result, kind, amount),
                card_label=card_label if kind == InstructionKind.CARD_REFUND else None,
                metadata={"tier": result.tier.value, **metadata},
            )
        )
    return instructions
