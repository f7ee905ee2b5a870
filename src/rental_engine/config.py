"""Engine settings loaded from environment variables.

Cancellation windows are product policy, so they are read from the
environment rather than hard-coded. The defaults match the published
guest cancellation policy (72h / 24h windows, Phoenix wall-clock time).
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .models.errors import PolicyConfigurationError

DEFAULT_POLICY_TIMEZONE = "America/Phoenix"


@dataclass(frozen=True)
class EngineSettings:
    """Immutable engine configuration."""

    policy_timezone: str = DEFAULT_POLICY_TIMEZONE
    free_window_hours: int = 72
    moderate_window_hours: int = 24
    moderate_penalty_percent: int = 25
    late_penalty_percent: int = 50
    verification_grace_hours: int = 24
    max_validation_charge_cents: int = 100
    max_cancellation_horizon_days: int = 365

    @property
    def tzinfo(self) -> ZoneInfo:
        """Policy timezone as a ZoneInfo instance."""
        return ZoneInfo(self.policy_timezone)


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise PolicyConfigurationError({"setting": name, "value": raw}) from e
    if value < minimum:
        raise PolicyConfigurationError({"setting": name, "value": raw})
    return value


def load_settings() -> EngineSettings:
    """Build settings from ``RENTAL_*`` environment variables.

    Raises:
        PolicyConfigurationError: If a value is not a valid integer, is
            below its minimum, or the timezone is unknown.
    """
    timezone_name = os.environ.get("RENTAL_POLICY_TIMEZONE") or DEFAULT_POLICY_TIMEZONE
    try:
        ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise PolicyConfigurationError(
            {"setting": "RENTAL_POLICY_TIMEZONE", "value": timezone_name}
        ) from e

    return EngineSettings(
        policy_timezone=timezone_name,
        free_window_hours=_int_env("RENTAL_FREE_WINDOW_HOURS", 72, minimum=1),
        moderate_window_hours=_int_env("RENTAL_MODERATE_WINDOW_HOURS", 24, minimum=1),
        moderate_penalty_percent=_int_env("RENTAL_MODERATE_PENALTY_PERCENT", 25),
        late_penalty_percent=_int_env("RENTAL_LATE_PENALTY_PERCENT", 50),
        verification_grace_hours=_int_env("RENTAL_VERIFICATION_GRACE_HOURS", 24),
        max_validation_charge_cents=_int_env(
            "RENTAL_MAX_VALIDATION_CHARGE_CENTS", 100, minimum=1
        ),
        max_cancellation_horizon_days=_int_env(
            "RENTAL_MAX_CANCELLATION_HORIZON_DAYS", 365, minimum=1
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Get the shared EngineSettings instance (singleton pattern).

    Call ``get_settings.cache_clear()`` after changing the environment.
    """
    return load_settings()
