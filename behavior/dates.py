import math
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone


def school_timezone():
    return ZoneInfo(getattr(settings, 'SCHOOL_TIMEZONE', 'America/Detroit'))


def _local(when):
    if when is None:
        when = timezone.now()
    if timezone.is_naive(when):
        # Naive datetimes are taken as UTC, matching how the store records time
        when = when.replace(tzinfo=dt_timezone.utc)
    return when.astimezone(school_timezone())


def get_today_key(when=None):
    """Calendar day in the school's time zone as ``YYYY-MM-DD``."""
    if isinstance(when, date) and not isinstance(when, datetime):
        return when.isoformat()
    return _local(when).strftime('%Y-%m-%d')


def get_week(when=None):
    """
    The Sunday-to-Saturday week containing ``when``.

    Returns ``{'key', 'startISO', 'endISO'}`` where the key is
    ``YYYY-Www`` numbered by which seven-day block of the month the Sunday
    falls in, and the bounds are UTC ISO timestamps of the local Sunday
    00:00:00.000 and Saturday 23:59:59.999.
    """
    local = _local(when)
    tz = local.tzinfo
    sunday = local.date() - timedelta(days=(local.weekday() + 1) % 7)
    saturday = sunday + timedelta(days=6)

    start = datetime.combine(sunday, time.min, tzinfo=tz)
    end = datetime.combine(saturday, time(23, 59, 59, 999000), tzinfo=tz)
    week_number = math.ceil(sunday.day / 7)

    return {
        'key': f"{sunday.year}-W{week_number:02d}",
        'startISO': start.astimezone(dt_timezone.utc).isoformat(timespec='milliseconds'),
        'endISO': end.astimezone(dt_timezone.utc).isoformat(timespec='milliseconds'),
    }
