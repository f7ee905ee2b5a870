"""Structured logging for lifecycle and refund decisions.

Every log line the engine writes can be tied back to the request that
triggered it through a correlation ID held in a context variable. The
caller (API handler, support tool, batch job) binds the ID; the engine only
reads it.

Usage:
    from rental_engine.utils.logging import correlation_scope, get_logger

    with correlation_scope(request.headers.get("X-Correlation-ID")):
        engine.calculate_refund(snapshot, cancelled_at=now)

Helpers render the context as ``key=value`` pairs joined by `` | `` and
also attach it to the record via ``extra`` for JSON handlers.
"""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

NO_CORRELATION_ID = "no-correlation-id"

# Bound per request/task by the caller; contextvars keep threads and tasks apart
_correlation_id: ContextVar[str | None] = ContextVar("rental_correlation_id", default=None)


def generate_correlation_id() -> str:
    """Return a fresh UUID4 correlation ID."""
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID to the current context.

    Args:
        correlation_id: ID received from upstream; a new one is generated
            when empty.

    Returns:
        The bound correlation ID.
    """
    bound = correlation_id or generate_correlation_id()
    _correlation_id.set(bound)
    return bound


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a ``with`` block.

    The previous binding is restored on exit, so nested scopes are safe.
    """
    token = _correlation_id.set(correlation_id or generate_correlation_id())
    try:
        yield _correlation_id.get() or NO_CORRELATION_ID
    finally:
        _correlation_id.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Stamps each record with the bound correlation ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """Prefixes formatted records with ``[correlation-id]``."""

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id is None:
            correlation_id = get_correlation_id() or NO_CORRELATION_ID
            record.correlation_id = correlation_id
        return f"[{correlation_id}] {super().format(record)}"


def get_logger(name: str) -> logging.Logger:
    """Return the named logger with a CorrelationIdFilter attached once."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def _join_context(headline: str, context: dict[str, Any], skip: set[str]) -> str:
    pairs = [f"{key}={value}" for key, value in context.items() if key not in skip]
    return " | ".join([headline, *pairs])


def log_refund_calculation(
    logger: logging.Logger,
    operation: str,
    *,
    booking_id: str | None = None,
    tier: str | None = None,
    refund_cents: int | None = None,
    penalty_cents: int | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log the outcome of a refund calculation.

    Writes INFO for a completed calculation and ERROR when ``error`` is
    given (reconciliation failures need an operator).

    Args:
        logger: Destination logger
        operation: Engine entry point, e.g. "calculate_refund"
        booking_id: Booking being reconciled
        tier: Resolved cancellation tier value
        refund_cents: Subtotal refund in cents
        penalty_cents: Subtotal penalty in cents
        error: Rendered error when the calculation was rejected
        **extra: More ``key=value`` context, appended in order
    """
    fields = {
        "booking_id": booking_id,
        "tier": tier,
        "refund_cents": refund_cents,
        "penalty_cents": penalty_cents,
        "error": error,
    }
    context: dict[str, Any] = {"operation": operation}
    context.update({k: v for k, v in fields.items() if v is not None and v != ""})
    context.update(extra)

    message = _join_context(f"Refund calculation: {operation}", context, {"operation"})
    level = logging.ERROR if error else logging.INFO
    logger.log(level, message, extra=context)


def log_lifecycle_resolution(
    logger: logging.Logger,
    booking_id: str,
    state: str,
    *,
    rule: str,
    **extra: Any,
) -> None:
    """Log which precedence rule decided a booking's lifecycle state.

    Resolution runs on every page that shows a booking, so this is DEBUG.
    """
    context: dict[str, Any] = {"booking_id": booking_id, "state": state, "rule": rule}
    context.update(extra)

    message = _join_context(
        f"Lifecycle resolved: {booking_id} -> {state}", context, {"booking_id", "state"}
    )
    logger.debug(message, extra=context)
