"""Unit tests for environment-driven engine settings."""

from zoneinfo import ZoneInfo

import pytest

from rental_engine.config import EngineSettings, get_settings, load_settings
from rental_engine.models import ErrorCode, PolicyConfigurationError


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_defaults(self) -> None:
        settings = load_settings()

        assert settings == EngineSettings()
        assert settings.policy_timezone == "America/Phoenix"
        assert settings.free_window_hours == 72
        assert settings.moderate_window_hours == 24
        assert settings.tzinfo == ZoneInfo("America/Phoenix")

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RENTAL_POLICY_TIMEZONE", "America/Denver")
        monkeypatch.setenv("RENTAL_FREE_WINDOW_HOURS", "96")
        monkeypatch.setenv("RENTAL_LATE_PENALTY_PERCENT", "60")
        monkeypatch.setenv("RENTAL_MAX_VALIDATION_CHARGE_CENTS", "200")

        settings = load_settings()

        assert settings.policy_timezone == "America/Denver"
        assert settings.free_window_hours == 96
        assert settings.late_penalty_percent == 60
        assert settings.max_validation_charge_cents == 200

    def test_blank_value_uses_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RENTAL_FREE_WINDOW_HOURS", "  ")

        assert load_settings().free_window_hours == 72

    @pytest.mark.parametrize(
        "name,value",
        [
            ("RENTAL_FREE_WINDOW_HOURS", "seventy-two"),
            ("RENTAL_FREE_WINDOW_HOURS", "0"),
            ("RENTAL_LATE_PENALTY_PERCENT", "-5"),
            ("RENTAL_POLICY_TIMEZONE", "Mars/Olympus_Mons"),
        ],
    )
    def test_invalid_values(
        self, monkeypatch: pytest.MonkeyPatch, name: str, value: str
    ) -> None:
        monkeypatch.setenv(name, value)

        with pytest.raises(PolicyConfigurationError) as exc_info:
            load_settings()

        assert exc_info.value.code == ErrorCode.POLICY_MISCONFIGURED
        assert exc_info.value.details["setting"] == name


class TestGetSettings:
    """Tests for the cached settings accessor."""

    def test_cached_until_cleared(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_settings()
        monkeypatch.setenv("RENTAL_FREE_WINDOW_HOURS", "48")

        assert get_settings() is first

        get_settings.cache_clear()
        assert get_settings().free_window_hours == 48
