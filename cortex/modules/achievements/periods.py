"""Calendar period keys shared by achievements and task scopes.

Keys: ISO week ``YYYY-Www``, month ``YYYY-MM``, year ``YYYY`` and day
``YYYY-MM-DD``. Days are local calendar days in the user's timezone.
"""

import re
from datetime import UTC, date, datetime, timedelta

from dateutil import parser as dateutil_parser
from dateutil import tz as dateutil_tz
from dateutil.relativedelta import relativedelta

from cortex.core.config import settings
from cortex.domain.achievement import AchievementTier
from cortex.domain.task import TaskScope


_DAY_KEY = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_WEEK_KEY = re.compile(r"^(\d{4})-W(\d{2})$")
_MONTH_KEY = re.compile(r"^(\d{4})-(\d{2})$")
_YEAR_KEY = re.compile(r"^(\d{4})$")

TIER_SCOPES: dict[AchievementTier, TaskScope] = {
    AchievementTier.WEEKLY: TaskScope.WEEK,
    AchievementTier.MONTHLY: TaskScope.MONTH,
    AchievementTier.YEARLY: TaskScope.YEAR,
}


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    parsed = value if isinstance(value, datetime) else dateutil_parser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def local_date(value: str | datetime, tz_name: str | None = None) -> date:
    """Calendar day of a timestamp in the user's timezone."""
    zone = dateutil_tz.gettz(tz_name or settings.user_timezone)
    if zone is None:
        msg = f"Unknown timezone: {tz_name or settings.user_timezone}"
        raise ValueError(msg)
    return parse_timestamp(value).astimezone(zone).date()


def format_scope_key(scope: TaskScope, day: date) -> str:
    """Key of the calendar bucket containing ``day``."""
    if scope == TaskScope.DAY:
        return day.isoformat()
    if scope == TaskScope.WEEK:
        iso_year, iso_week, _ = day.isocalendar()
        return f"{iso_year}-W{iso_week:02d}"
    if scope == TaskScope.MONTH:
        return f"{day.year:04d}-{day.month:02d}"
    if scope == TaskScope.YEAR:
        return f"{day.year:04d}"
    msg = f"Scope {scope} has no calendar key"
    raise ValueError(msg)


def scope_key_bounds(scope: TaskScope, key: str) -> tuple[date, date]:
    """First and last day of a calendar bucket.

    Raises:
        ValueError: If the key does not match the scope's format
    """
    try:
        if scope == TaskScope.DAY and (m := _DAY_KEY.match(key)):
            day = date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
            return day, day
        if scope == TaskScope.WEEK and (m := _WEEK_KEY.match(key)):
            first = date.fromisocalendar(int(m.group(1)), int(m.group(2)), 1)
            return first, first + timedelta(days=6)
        if scope == TaskScope.MONTH and (m := _MONTH_KEY.match(key)):
            first = date(int(m.group(1)), int(m.group(2)), 1)
            return first, first + relativedelta(months=1, days=-1)
        if scope == TaskScope.YEAR and (m := _YEAR_KEY.match(key)):
            year = int(m.group(1))
            return date(year, 1, 1), date(year, 12, 31)
    except ValueError as e:
        msg = f"Invalid {scope} key: {key!r}"
        raise ValueError(msg) from e

    msg = f"Invalid {scope} key: {key!r}"
    raise ValueError(msg)


def period_key(tier: AchievementTier, day: date) -> str:
    """Period key of the given tier containing ``day``."""
    return format_scope_key(TIER_SCOPES[tier], day)


def tier_of(key: str) -> AchievementTier:
    """Tier a period key belongs to."""
    if _WEEK_KEY.match(key):
        return AchievementTier.WEEKLY
    if _MONTH_KEY.match(key):
        return AchievementTier.MONTHLY
    if _YEAR_KEY.match(key):
        return AchievementTier.YEARLY
    msg = f"Invalid period key: {key!r}"
    raise ValueError(msg)


def period_bounds(key: str) -> tuple[date, date]:
    """First and last local day of a period."""
    return scope_key_bounds(TIER_SCOPES[tier_of(key)], key)


def days_in(key: str) -> list[date]:
    """Every day of a period, in order."""
    first, last = period_bounds(key)
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]
