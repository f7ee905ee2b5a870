"""Booking lifecycle resolution and cancellation refund reconciliation."""

from .models import BookingSnapshot, LifecycleState, RefundResult
from .services import (
    CancellationEngine,
    build_refund_instructions,
    get_cancellation_engine,
    resolve_lifecycle_state,
)

__all__ = [
    "BookingSnapshot",
    "CancellationEngine",
    "LifecycleState",
    "RefundResult",
    "build_refund_instructions",
    "get_cancellation_engine",
    "resolve_lifecycle_state",
]
