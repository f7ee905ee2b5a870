"""Cent arithmetic helpers.

All engine amounts are integer cents. Dollar values only appear at the
record-parsing boundary, where they are converted with round-half-even.
"""

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from fractions import Fraction
from typing import Sequence

CENT = Decimal("0.01")


def dollars_to_cents(value: object) -> int:
    """Convert a dollar amount (str, int, float or Decimal) to integer cents.

    Floats go through ``str`` first so 19.99 stays 1999 rather than 1998.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a money amount: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a money amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a money amount: {value!r}")
    return int((amount.quantize(CENT, rounding=ROUND_HALF_EVEN) * 100).to_integral_value())


def percent_of(amount: int, percentage: int | Decimal) -> int:
    """Return ``amount * percentage / 100`` rounded half-even to whole cents."""
    exact = Decimal(amount) * Decimal(percentage) / Decimal(100)
    return int(exact.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


def divide_half_even(numerator: int, denominator: int) -> int:
    """Integer division rounded half-even."""
    return round(Fraction(numerator, denominator))


def allocate_proportionally(total: int, weights: Sequence[int]) -> list[int]:
    """Split ``total`` cents across ``weights`` with the largest-remainder method.

    Each share is the floor of its exact proportional value plus at most one
    leftover cent, handed out by descending fractional remainder. Ties go to
    the earlier weight, so the result is deterministic. Shares always sum to
    ``total`` and never exceed ``total * weight / sum(weights)`` rounded up.

    Args:
        total: Non-negative amount in cents to split
        weights: Non-negative contributions; at least one must be positive
            unless ``total`` is zero

    Returns:
        One share per weight, in input order.
    """
    weight_sum = sum(weights)
    if weight_sum == 0:
        if total:
            raise ValueError("Cannot allocate a non-zero amount across zero weights")
        return [0 for _ in weights]

    base: list[int] = []
    residuals: list[tuple[int, int]] = []
    for index, weight in enumerate(weights):
        share, remainder = divmod(total * weight, weight_sum)
        base.append(share)
        residuals.append((remainder, index))

    leftover = total - sum(base)
    # Largest remainder first; lower index wins ties
    residuals.sort(key=lambda item: (-item[0], item[1]))
    for _, index in residuals[:leftover]:
        base[index] += 1
    return base
