"""
Carbon Tracker — Period Keys
Calendar keys for the daily, weekly and monthly buckets.
"""

import math
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Union

DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"
PERIODS = (DAILY, WEEKLY, MONTHLY)


def _as_date(when: Optional[Union[date, datetime]]) -> date:
    if when is None:
        return datetime.now().date()
    if isinstance(when, datetime):
        return when.date()
    return when


def daily_key(when=None) -> str:
    return _as_date(when).isoformat()


def week_number(when=None) -> int:
    """Week of year, weeks starting on Sunday, week 1 containing January 1st.

    Numbering restarts each January 1st, so a Sunday-Saturday week that spans
    the new year is split across two keys: Sun 29 Dec 2024 to Tue 31 Dec 2024
    fall in 2024-W53, Wed 1 Jan 2025 to Sat 4 Jan 2025 in 2025-W01.
    """
    day = _as_date(when)
    jan1 = date(day.year, 1, 1)
    jan1_weekday = (jan1.weekday() + 1) % 7  # Sunday == 0
    past_days = (day - jan1).days
    return math.ceil((past_days + jan1_weekday + 1) / 7)


def weekly_key(when=None) -> str:
    day = _as_date(when)
    return f"{day.year}-W{week_number(day):02d}"


def monthly_key(when=None) -> str:
    day = _as_date(when)
    return f"{day.year}-{day.month:02d}"


KEY_FUNCTIONS = {
    DAILY: daily_key,
    WEEKLY: weekly_key,
    MONTHLY: monthly_key,
}


def period_key(period: str, when=None) -> str:
    try:
        return KEY_FUNCTIONS[period](when)
    except KeyError:
        raise ValueError(f"Unknown period '{period}'")


def period_keys(when=None) -> Dict[str, str]:
    """Keys of every period containing `when`."""
    return {period: fn(when) for period, fn in KEY_FUNCTIONS.items()}


def last_n_keys(period: str, n: int, today=None) -> List[str]:
    """Keys of the last `n` periods ending with the one containing `today`, oldest first."""
    day = _as_date(today)
    keys = []
    for i in range(n - 1, -1, -1):
        if period == DAILY:
            keys.append(daily_key(day - timedelta(days=i)))
        elif period == WEEKLY:
            keys.append(weekly_key(day - timedelta(days=7 * i)))
        elif period == MONTHLY:
            months = day.year * 12 + (day.month - 1) - i
            keys.append(f"{months // 12}-{months % 12 + 1:02d}")
        else:
            raise ValueError(f"Unknown period '{period}'")
    return keys
