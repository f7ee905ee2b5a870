"""Wall-clock time helpers for policy windows."""

import datetime as dt


def is_aware(value: dt.datetime) -> bool:
    """Whether a datetime carries a usable UTC offset."""
    return value.tzinfo is not None and value.utcoffset() is not None


def to_utc(value: dt.datetime) -> dt.datetime:
    """The same instant expressed in UTC."""
    return value.astimezone(dt.timezone.utc)


def local_threshold(pickup_at: dt.datetime, hours: int, tzinfo: dt.tzinfo) -> dt.datetime:
    """Instant at which the clock in ``tzinfo`` reads ``hours`` before pickup.

    "72 hours before a 10:00 pickup" is 10:00 local time three days earlier,
    even when a DST change falls in between. The result is returned in UTC
    so comparisons against it are made on real instants, not on local
    readings that repeat during the fall-back hour.
    """
    if hours == 0:
        return to_utc(pickup_at)
    local_pickup = pickup_at.astimezone(tzinfo).replace(tzinfo=None)
    return to_utc((local_pickup - dt.timedelta(hours=hours)).replace(tzinfo=tzinfo))


def wall_clock_delta(
    earlier: dt.datetime, later: dt.datetime, tzinfo: dt.tzinfo
) -> dt.timedelta:
    """Difference between two instants as read on a clock in ``tzinfo``.

    Used for display only; tier decisions go through ``local_threshold``.
    """
    local_earlier = earlier.astimezone(tzinfo).replace(tzinfo=None)
    local_later = later.astimezone(tzinfo).replace(tzinfo=None)
    return local_later - local_earlier


def to_hours(delta: dt.timedelta) -> float:
    """Timedelta as hours, rounded to two decimals for display."""
    return round(delta.total_seconds() / 3600, 2)
