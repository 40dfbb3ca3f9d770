"""Duration → profit percentage table and base profit arithmetic."""

from src.bo_common.errors import InvalidDurationError

PROFIT_PERCENT_BY_DURATION: dict[int, int] = {
    30: 20,
    60: 30,
    120: 40,
    180: 50,
    240: 60,
}

ALLOWED_DURATIONS: list[int] = sorted(PROFIT_PERCENT_BY_DURATION)


def validate_duration(duration: int) -> None:
    if duration not in PROFIT_PERCENT_BY_DURATION:
        raise InvalidDurationError(duration, ALLOWED_DURATIONS)


def profit_percentage(duration: int) -> int:
    validate_duration(duration)
    return PROFIT_PERCENT_BY_DURATION[duration]


def base_profit(amount_cents: int, duration: int) -> int:
    """amount * pct, floored to whole cents: 200000 @ 60s -> 60000."""
    return amount_cents * profit_percentage(duration) // 100
