from __future__ import annotations

from datetime import datetime

DEFAULT_CHECK_IN_PERIOD = "60 days"
DEFAULT_MAX_DAYS = 60

# "1 minute" is a debug setting that means "deliver on the next sweep".
PERIOD_DAYS: dict[str, int] = {
    "1 minute": 0,
    "30 days": 30,
    "60 days": 60,
    "90 days": 90,
}

_SECONDS_PER_DAY = 60 * 60 * 24


def max_days_for(period: str | None) -> int:
    """Day threshold for a check-in period; unknown or missing periods fall back to 60."""
    return PERIOD_DAYS.get(period or DEFAULT_CHECK_IN_PERIOD, DEFAULT_MAX_DAYS)


def days_since(last_check_in: datetime, now: datetime) -> int:
    """Whole days elapsed since the last check-in, floored and never negative."""
    elapsed = (now - last_check_in).total_seconds()
    if elapsed <= 0:
        return 0
    return int(elapsed // _SECONDS_PER_DAY)
