"""Next-run computation for the time-of-day daemon schedule."""

import zoneinfo
from collections.abc import Sequence
from datetime import UTC, datetime, time, timedelta, tzinfo


def parse_time_of_day(value: str) -> time:
    """Parse an ``HH:MM`` string.

    Raises:
        ValueError: If the value is not a valid 24-hour time.
    """
    hours, sep, minutes = value.strip().partition(":")
    if not sep or not hours.isdigit() or len(minutes) != 2 or not minutes.isdigit():
        msg = f"Invalid time '{value}', expected HH:MM"
        raise ValueError(msg)
    return time(int(hours), int(minutes))


def next_run_time(
    times: Sequence[str],
    now: datetime,
    timezone: str | None = None,
) -> datetime:
    """Return the first scheduled slot strictly after ``now``.

    Slots are wall-clock times in ``timezone``, or in the zone of ``now``
    when no timezone is given. When every slot of the current day has
    passed, the earliest slot of the next day is returned.

    Args:
        times: ``HH:MM`` entries, in any order.
        now: Current time; naive values are read as UTC.
        timezone: IANA zone name for the slots.

    Returns:
        Timezone-aware datetime of the next run.

    Raises:
        ValueError: If no times are given or one is malformed.
    """
    if not times:
        msg = "No times configured in schedule.times"
        raise ValueError(msg)
    slots = sorted({parse_time_of_day(entry) for entry in times})

    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    zone: tzinfo = zoneinfo.ZoneInfo(timezone) if timezone else now.tzinfo or UTC
    local_now = now.astimezone(zone)

    for slot in slots:
        candidate = datetime.combine(local_now.date(), slot, tzinfo=zone)
        if candidate > local_now:
            return candidate

    tomorrow = local_now.date() + timedelta(days=1)
    return datetime.combine(tomorrow, slots[0], tzinfo=zone)
