import calendar
import logging
import re
from datetime import datetime, timedelta, timezone

INTERVAL_UNITS = ("second", "minute", "hour", "day", "week", "month", "year")

_INTERVAL_RE = re.compile(r"^\s*(\d+)\s*(second|minute|hour|day|week|month|year)s?\s*$", re.IGNORECASE)


def parse_interval(value: str) -> tuple[int, str] | None:
    """
    Parse a relative interval like "30 days" or "1 year" into (amount, unit), or None if it is not valid
    """
    m = _INTERVAL_RE.match(value or "")
    if not m:
        return None
    return int(m.group(1)), m.group(2).lower()


def add_months(when: datetime, months: int) -> datetime:
    month = when.month - 1 + months
    year = when.year + month // 12
    month = month % 12 + 1
    day = min(when.day, calendar.monthrange(year, month)[1])
    return when.replace(year=year, month=month, day=day)


def interval_to_seconds(value: str, now: datetime | None = None) -> int | None:
    """
    Convert a relative interval to seconds, counted from now (months and years differ in length)
    """
    interval = parse_interval(value)
    if interval is None:
        return None
    amount, unit = interval
    now = now or datetime.now(timezone.utc)

    if unit == "month":
        later = add_months(now, amount)
    elif unit == "year":
        later = add_months(now, 12 * amount)
    else:
        later = now + timedelta(**{f"{unit}s": amount})
    return int((later - now).total_seconds())


def cache_control_header(expires: str, now: datetime | None = None) -> str | None:
    if not expires:
        return None
    seconds = interval_to_seconds(expires, now)
    if seconds is None:
        logging.warning(f"Ignoring invalid expiry interval {expires!r}")
        return None
    return f"max-age={seconds}, must-revalidate"
