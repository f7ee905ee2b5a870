"""Lifecycle and cancellation services."""

from .cancellation_engine import CancellationEngine, get_cancellation_engine
from .lifecycle_resolver import (
    NON_CANCELLABLE_STATES,
    LifecycleResolver,
    LifecycleSignals,
    is_cancellable,
    resolve_lifecycle_state,
)
from .refund_instructions import build_refund_instructions
from .refund_policy_service import RefundPolicyService
from .source_distributor import SourceDistributor

__all__ = [
    "CancellationEngine",
    "LifecycleResolver",
    "LifecycleSignals",
    "NON_CANCELLABLE_STATES",
    "RefundPolicyService",
    "SourceDistributor",
    "build_refund_instructions",
    "get_cancellation_engine",
    "is_cancellable",
    "resolve_lifecycle_state",
]
