import calendar
import re
from datetime import date, datetime, time, timedelta

from services.errors import ValidationError

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")

MIN_SLOT_DURATION = 15
MAX_SLOT_DURATION = 120


def parse_date(value) -> date:
    """Accept a ``date`` or a strict ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_RE.match(value.strip()):
        raise ValidationError("Date must be in YYYY-MM-DD format", value=str(value))
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError("Date is not a valid calendar date", value=value)


def parse_time(value) -> time:
    """Accept a ``time`` or an ``H:MM``/``HH:MM`` string."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    match = TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError("Time must be in HH:MM format", value=str(value))
    return time(int(match.group(1)), int(match.group(2)))


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_between(start, end) -> int:
    return _minutes(parse_time(end)) - _minutes(parse_time(start))


def check_duration(duration_minutes) -> int:
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise ValidationError("Slot duration must be a whole number of minutes")
    if not MIN_SLOT_DURATION <= duration_minutes <= MAX_SLOT_DURATION:
        raise ValidationError(
            f"Slot duration must be between {MIN_SLOT_DURATION} and {MAX_SLOT_DURATION} minutes",
            slot_duration=duration_minutes,
        )
    return duration_minutes


def generate_slots(start_time, end_time, duration_minutes) -> list:
    """Slot start times from ``start_time`` up to (not including) ``end_time``.

    A trailing remainder shorter than one slot is dropped: 09:00-10:15 with
    30 minute slots gives 09:00, 09:30 and 10:00.
    """
    step = check_duration(duration_minutes)
    start = _minutes(parse_time(start_time))
    end = _minutes(parse_time(end_time))
    return [time(m // 60, m % 60) for m in range(start, end, step)]


def is_past_slot(day: date, slot: time, now: datetime) -> bool:
    """Past dates are entirely past; today, a slot at or before the current minute is."""
    today = now.date()
    if day != today:
        return day < today
    return slot <= now.time().replace(second=0, microsecond=0)


def month_range(month: int, year: int):
    if not isinstance(month, int) or not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12", month=month)
    if not isinstance(year, int) or not 1 <= year <= 9999:
        raise ValidationError("Year is out of range", year=year)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def iter_days(start: date, end: date):
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def resolve_now(now=None) -> datetime:
    return now if now is not None else datetime.now()
