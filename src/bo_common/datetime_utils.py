"""UTC datetime utilities."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def add_seconds(moment: datetime, seconds: int) -> datetime:
    return moment + timedelta(seconds=seconds)


def seconds_until(deadline: datetime, now: datetime | None = None) -> float:
    """Seconds from now until deadline, never negative."""
    now = now or utc_now()
    return max(0.0, (deadline - now).total_seconds())
