"""
Date helpers.

Pure functions behind every expiration computation: the minimum date a
user may pick, the number of days left until an instant, and calendar-aware
month arithmetic for quick renewals.

Every function that depends on the current moment takes an optional `now`
(timezone-aware). When omitted, the current time in the configured local
zone is used. `days_until` is recomputed on every listing and never cached,
so results stay correct while wall-clock time advances.
"""

import math
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo

from dateutil import tz as dateutil_tz
from dateutil.relativedelta import relativedelta

from app.core.config import APP_TIMEZONE

SECONDS_PER_DAY = 86400
INPUT_DATE_FORMAT = "%Y-%m-%d"
DISPLAY_DATE_FORMAT = "%d/%m/%Y"
INVALID_DATE_LABEL = "Data inválida"


def local_timezone() -> tzinfo:
    """
    Return the zone treated as "local time" (APP_TIMEZONE, or the host zone).

    The host zone is a `tzlocal` that follows daylight saving, so a date
    picked in summer for a winter day keeps its local midnight.
    """
    if APP_TIMEZONE:
        return ZoneInfo(APP_TIMEZONE)
    return dateutil_tz.tzlocal()


def now_local() -> datetime:
    """Return the current instant as an aware datetime in the local zone."""
    return datetime.now(local_timezone())


def minimum_allowed_date(now: Optional[datetime] = None) -> date:
    """
    Return the first calendar day a new expiration date may fall on.

    This is the day strictly after today, in the local zone of `now`.

    Args:
        now (datetime, optional): Reference instant. Defaults to `now_local()`.

    Returns:
        date: Tomorrow, as a date-only value.

    Example:
        >>> minimum_allowed_date(datetime(2026, 10, 19, 15, 30, tzinfo=timezone.utc))
        datetime.date(2026, 10, 20)
    """

    now = now or now_local()
    return now.date() + timedelta(days=1)


def days_until(target: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """
    Return the number of days from `now` until `target`, rounded up.

    Negative values mean the target is in the past; zero means it falls
    within the next 24 hours or has just passed.

    Args:
        target (datetime | None): Expiration instant.
        now (datetime, optional): Reference instant. Defaults to `now_local()`.

    Returns:
        int | None: ``ceil((target - now) / 1 day)``, or None when `target` is missing.
    """

    if target is None:
        return None
    now = now or now_local()
    delta = coerce_instant(target) - coerce_instant(now)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def add_months(base: datetime, months: int) -> datetime:
    """
    Add calendar months to an instant.

    Month-end days are clamped to the last valid day of the target month
    (31 Jan + 1 month is 28/29 Feb).

    Args:
        base (datetime): Starting instant.
        months (int): Number of months to add.

    Returns:
        datetime: A new instant; `base` is left untouched.
    """

    return base + relativedelta(months=months)


def parse_date_input(raw: str, tz: Optional[tzinfo] = None) -> datetime:
    """
    Parse a `YYYY-MM-DD` string into local midnight of that day.

    Args:
        raw (str): Date as sent by an HTML date input.
        tz (tzinfo, optional): Zone of the returned instant. Defaults to `local_timezone()`.

    Returns:
        datetime: Aware datetime at 00:00 of the given day.

    Raises:
        ValueError: If `raw` is not a valid calendar date in that format.
    """

    parsed = datetime.strptime(raw.strip(), INPUT_DATE_FORMAT)
    return parsed.replace(tzinfo=tz or local_timezone())


def format_date_input(value: Optional[datetime], tz: Optional[tzinfo] = None) -> Optional[str]:
    """Render an instant as the `YYYY-MM-DD` string a date input expects."""
    instant = coerce_instant(value)
    if instant is None:
        return None
    return instant.astimezone(tz or local_timezone()).strftime(INPUT_DATE_FORMAT)


def format_display_date(value: Optional[datetime], tz: Optional[tzinfo] = None) -> str:
    """Render an instant as `DD/MM/YYYY`, or "Data inválida" when missing."""
    instant = coerce_instant(value)
    if instant is None:
        return INVALID_DATE_LABEL
    return instant.astimezone(tz or local_timezone()).strftime(DISPLAY_DATE_FORMAT)


def coerce_instant(value: Any) -> Optional[datetime]:
    """
    Normalize a stored expiration value into an aware UTC datetime.

    Accepted shapes:
        - aware datetimes (converted to UTC)
        - naive datetimes, taken as UTC (what the Mongo driver returns by default)
        - epoch seconds (int / float)
        - timestamp mappings with a numeric ``seconds`` key
        - ISO 8601 strings

    Anything else is considered malformed.

    Returns:
        datetime | None: The instant in UTC, or None when missing or malformed.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, dict):
        seconds = value.get("seconds")
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        return None
    if isinstance(value, str):
        try:
            return coerce_instant(datetime.fromisoformat(value))
        except ValueError:
            return None
    return None
