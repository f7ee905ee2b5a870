"""Pytest configuration and fixtures for the rental engine tests.

This module provides reusable fixtures for testing:
- Clean RENTAL_* environment and reset settings/engine singletons
- A booking snapshot factory with a realistic all-card booking
- Engine fixtures built from default settings
"""

import os
from datetime import datetime, timedelta
from typing import Any, Callable, Generator
from zoneinfo import ZoneInfo

import pytest

from rental_engine.config import EngineSettings, get_settings
from rental_engine.models import (
    BookingSnapshot,
    BookingStatus,
    PaymentStatus,
    VerificationStatus,
)
from rental_engine.services.cancellation_engine import (
    CancellationEngine,
    get_cancellation_engine,
)

PHOENIX = ZoneInfo("America/Phoenix")

# Pickup on 2026-07-20 at 10:00 local time
PICKUP_AT = datetime(2026, 7, 20, 10, 0, tzinfo=PHOENIX)


# === Environment Setup ===


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Remove RENTAL_* overrides and reset cached singletons around each test."""
    for key in list(os.environ):
        if key.startswith("RENTAL_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    get_cancellation_engine.cache_clear()
    yield
    get_settings.cache_clear()
    get_cancellation_engine.cache_clear()


# === Snapshot Fixtures ===


def build_snapshot(**overrides: Any) -> BookingSnapshot:
    """Build a confirmed, card-paid 3-day booking with optional overrides.

    Defaults: subtotal $300.00, service fee $30.00, taxes $24.00,
    total $354.00 charged to card, $500.00 deposit held on card.
    """
    data: dict[str, Any] = {
        "booking_id": "bk_001",
        "booking_code": "RENT-2026-0001",
        "status": BookingStatus.CONFIRMED,
        "verification_status": VerificationStatus.APPROVED,
        "payment_status": PaymentStatus.PAID,
        "created_at": datetime(2026, 7, 1, 9, 0, tzinfo=PHOENIX),
        "pickup_at": PICKUP_AT,
        "return_at": PICKUP_AT + timedelta(days=3),
        "rental_days": 3,
        "subtotal": 30000,
        "service_fee": 3000,
        "insurance_fee": 0,
        "delivery_fee": 0,
        "taxes": 2400,
        "total_amount": 35400,
        "deposit_amount": 50000,
        "credits_applied": 0,
        "bonus_applied": 0,
        "card_charged": 35400,
        "deposit_from_wallet": 0,
        "deposit_from_card": 50000,
        "card_brand": "visa",
        "card_last4": "4242",
    }
    data.update(overrides)
    return BookingSnapshot(**data)


@pytest.fixture
def make_snapshot() -> Callable[..., BookingSnapshot]:
    """Factory fixture for booking snapshots."""
    return build_snapshot


@pytest.fixture
def snapshot() -> BookingSnapshot:
    """Default confirmed, card-paid booking."""
    return build_snapshot()


@pytest.fixture
def settings() -> EngineSettings:
    """Default engine settings (Phoenix, 72h/24h windows)."""
    return EngineSettings()


@pytest.fixture
def engine(settings: EngineSettings) -> CancellationEngine:
    """Cancellation engine with default settings."""
    return CancellationEngine(settings)


def hours_before_pickup(hours: float) -> datetime:
    """Instant ``hours`` before the default pickup."""
    return PICKUP_AT - timedelta(hours=hours)
