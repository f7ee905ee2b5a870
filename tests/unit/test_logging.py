"""Unit tests for structured logging utilities."""

import logging
from typing import Generator

import pytest

from rental_engine.config import EngineSettings
from rental_engine.services.lifecycle_resolver import LifecycleResolver
from rental_engine.utils.logging import (
    CorrelationIdFilter,
    StructuredFormatter,
    clear_correlation_id,
    correlation_scope,
    get_correlation_id,
    get_logger,
    log_lifecycle_resolution,
    log_refund_calculation,
    set_correlation_id,
)

from conftest import build_snapshot, hours_before_pickup


@pytest.fixture(autouse=True)
def reset_correlation_id() -> Generator[None, None, None]:
    clear_correlation_id()
    yield
    clear_correlation_id()


class TestCorrelationId:
    """Tests for correlation ID context management."""

    def test_set_and_get(self) -> None:
        assert set_correlation_id("req-123") == "req-123"
        assert get_correlation_id() == "req-123"

    def test_generates_when_missing(self) -> None:
        cid = set_correlation_id()

        assert cid
        assert get_correlation_id() == cid

    def test_clear(self) -> None:
        set_correlation_id("req-123")
        clear_correlation_id()

        assert get_correlation_id() is None

    def test_scope_restores_previous_binding(self) -> None:
        set_correlation_id("outer")

        with correlation_scope("inner") as cid:
            assert cid == "inner"
            assert get_correlation_id() == "inner"

        assert get_correlation_id() == "outer"

    def test_scope_generates_id(self) -> None:
        with correlation_scope() as cid:
            assert cid
            assert get_correlation_id() == cid


class TestFormatting:
    """Tests for the filter and formatter."""

    def _record(self) -> logging.LogRecord:
        return logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)

    def test_filter_adds_correlation_id(self) -> None:
        set_correlation_id("req-9")
        record = self._record()

        assert CorrelationIdFilter().filter(record)
        assert record.correlation_id == "req-9"  # type: ignore[attr-defined]

    def test_formatter_prefixes_correlation_id(self) -> None:
        record = self._record()

        assert StructuredFormatter("%(message)s").format(record) == "[no-correlation-id] hello"

    def test_get_logger_adds_filter_once(self) -> None:
        logger = get_logger("rental_engine.test_logging")
        get_logger("rental_engine.test_logging")

        assert sum(isinstance(f, CorrelationIdFilter) for f in logger.filters) == 1


class TestLogHelpers:
    """Tests for the structured log helpers."""

    def test_refund_calculation_success(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_logger("rental_engine.test_logging")

        with caplog.at_level(logging.INFO, logger="rental_engine"):
            log_refund_calculation(
                logger,
                "calculate_refund",
                booking_id="bk_1",
                tier="late",
                refund_cents=15000,
                penalty_cents=15000,
            )

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert record.getMessage() == (
            "Refund calculation: calculate_refund | booking_id=bk_1 | tier=late"
            " | refund_cents=15000 | penalty_cents=15000"
        )

    def test_refund_calculation_error(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_logger("rental_engine.test_logging")

        with caplog.at_level(logging.INFO, logger="rental_engine"):
            log_refund_calculation(logger, "calculate_refund", booking_id="bk_1", error="boom")

        assert caplog.records[-1].levelno == logging.ERROR

    def test_lifecycle_resolution_names_rule(self, caplog: pytest.LogCaptureFixture) -> None:
        resolver = LifecycleResolver(EngineSettings())

        with caplog.at_level(logging.DEBUG, logger="rental_engine"):
            resolver.resolve(build_snapshot(has_open_claim=True), hours_before_pickup(30))

        messages = [r.getMessage() for r in caplog.records]
        assert "Lifecycle resolved: bk_001 -> ISSUES | rule=open_claim" in messages

    def test_lifecycle_helper_extra_context(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_logger("rental_engine.test_logging")

        with caplog.at_level(logging.DEBUG, logger="rental_engine"):
            log_lifecycle_resolution(logger, "bk_2", "PENDING", rule="fallback", page="trips")

        assert caplog.records[-1].getMessage() == (
            "Lifecycle resolved: bk_2 -> PENDING | rule=fallback | page=trips"
        )
