"""Read side: which slots are free on a day, which days of a month are open."""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from itertools import groupby
from typing import Optional

from flask import current_app
from sqlalchemy import func

from models.booking import CANCELLED, Booking
from services.availability import find_for_booking, get_window, list_windows, max_booking_date
from services.conflicts import booked_times
from services.errors import NotFound
from services.filters import BookingFilter
from utils.timegrid import format_time, is_past_slot, iter_days, month_range, parse_date, parse_time, resolve_now


@dataclass
class SlotStatus:
    time: time
    is_booked: bool
    is_past: bool

    @property
    def available(self) -> bool:
        return not self.is_booked and not self.is_past


@dataclass
class DaySchedule:
    date: date
    start_time: time
    end_time: time
    slot_duration: int
    slots: list = field(default_factory=list)

    @property
    def total_slots(self) -> int:
        return len(self.slots)

    @property
    def booked_slots(self) -> int:
        return sum(1 for s in self.slots if s.is_booked)

    @property
    def available_slots(self) -> int:
        return sum(1 for s in self.slots if s.available)


@dataclass
class SlotCheck:
    date: date
    time_slot: time
    available: bool
    reason: Optional[str] = None


@dataclass
class CalendarDay:
    date: date
    is_available: bool = False
    is_past: bool = False
    is_today: bool = False
    total_slots: int = 0
    booked_slots: int = 0

    @property
    def available_slots(self) -> int:
        return max(self.total_slots - self.booked_slots, 0)

    @property
    def is_fully_booked(self) -> bool:
        return self.is_available and self.booked_slots >= self.total_slots


@dataclass
class MonthCalendar:
    month: int
    year: int
    days: list = field(default_factory=list)

    @property
    def available_days(self) -> int:
        return sum(1 for d in self.days if d.is_available)


@dataclass
class OpenSlot:
    date: date
    time_slot: time

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.time_slot)


def _schedule(window, now) -> DaySchedule:
    taken = booked_times(window.date)
    schedule = DaySchedule(
        date=window.date,
        start_time=window.start_time,
        end_time=window.end_time,
        slot_duration=window.slot_duration,
    )
    for slot in window.generate_slots():
        schedule.slots.append(SlotStatus(
            time=slot,
            is_booked=slot in taken,
            is_past=is_past_slot(window.date, slot, now),
        ))
    return schedule


def slots_for_date(day, now=None, bookable_only=True) -> DaySchedule:
    """Full slot grid for ``day`` annotated with bookings and elapsed time.

    Customers go through ``find_for_booking`` (active, not past, within the
    horizon). ``bookable_only=False`` is the admin view of any window.
    """
    now = resolve_now(now)
    window = find_for_booking(day, now=now) if bookable_only else get_window(day)
    return _schedule(window, now)


def check_slot(day, time_slot, now=None) -> SlotCheck:
    now = resolve_now(now)
    day = parse_date(day)
    slot = parse_time(time_slot)

    def _no(reason):
        return SlotCheck(date=day, time_slot=slot, available=False, reason=reason)

    if day < now.date():
        return _no("Date is in the past")
    if is_past_slot(day, slot, now):
        return _no("Time slot is in the past")
    try:
        window = find_for_booking(day, now=now)
    except NotFound:
        return _no("Date is not available for booking")
    if not window.is_valid_slot(slot):
        return _no("Time slot is not valid for this date")
    if slot in booked_times(day):
        return _no("Time slot is already booked")
    return SlotCheck(date=day, time_slot=slot, available=True)


def _live_counts(start, end) -> dict:
    rows = (
        Booking.query
        .with_entities(Booking.date, func.count(Booking.id))
        .filter(Booking.date >= start, Booking.date <= end, Booking.status != CANCELLED)
        .group_by(Booking.date)
        .all()
    )
    return {d: n for d, n in rows}


def calendar_for_month(month, year, now=None) -> MonthCalendar:
    now = resolve_now(now)
    today = now.date()
    start, end = month_range(month, year)

    windows = {w.date: w for w in list_windows(start, end, active_only=True)}
    counts = _live_counts(start, end)

    cal = MonthCalendar(month=month, year=year)
    for day in iter_days(start, end):
        entry = CalendarDay(date=day, is_past=day < today, is_today=day == today)
        window = windows.get(day)
        if window is not None:
            entry.is_available = True
            entry.total_slots = window.total_slots
            entry.booked_slots = counts.get(day, 0)
        cal.days.append(entry)
    return cal


def next_available_slots(count=5, from_date=None, now=None) -> list:
    """Earliest free slots from ``from_date`` on, within the look-ahead.

    Fewer than ``count`` results just means the look-ahead ran out.
    """
    now = resolve_now(now)
    start = max(parse_date(from_date), now.date()) if from_date else now.date()
    lookahead = current_app.config.get("NEXT_SLOTS_LOOKAHEAD_DAYS", 30)
    end = min(start + timedelta(days=lookahead), max_booking_date(now))

    found = []
    if count <= 0:
        return found
    for window in list_windows(start, end, active_only=True):
        taken = booked_times(window.date)
        for slot in window.generate_slots():
            if slot in taken or is_past_slot(window.date, slot, now):
                continue
            found.append(OpenSlot(date=window.date, time_slot=slot))
            if len(found) >= count:
                return found
    return found


def window_overview(start=None, end=None):
    """Admin summary of every window (active or not) in a date range."""
    windows = list_windows(start, end, active_only=False)
    if not windows:
        return []
    counts = _live_counts(windows[0].date, windows[-1].date)
    return [
        {
            "date": w.date.isoformat(),
            "start_time": format_time(w.start_time),
            "end_time": format_time(w.end_time),
            "slot_duration": w.slot_duration,
            "is_active": w.is_active,
            "total_slots": w.total_slots,
            "booked_slots": counts.get(w.date, 0),
            "available_slots": max(w.total_slots - counts.get(w.date, 0), 0),
        }
        for w in windows
    ]


def booked_dates(now=None) -> dict:
    """Live bookings from today on, grouped by date in slot order."""
    today = resolve_now(now).date()
    rows = (
        BookingFilter(start=today, exclude_cancelled=True).apply(Booking.query)
        .order_by(Booking.date.asc(), Booking.time_slot.asc())
        .all()
    )
    dates = [
        {
            "date": day.isoformat(),
            "bookings": [
                {
                    "id": b.id,
                    "booking_reference": b.booking_reference,
                    "time_slot": format_time(b.time_slot),
                    "status": b.status,
                    "customer": {
                        "name": b.customer_name,
                        "email": b.customer_email,
                        "phone": b.customer_phone,
                        "notes": b.customer_notes or "",
                    },
                }
                for b in group
            ],
        }
        for day, group in groupby(rows, key=lambda b: b.date)
    ]
    return {
        "summary": {
            "total_booked_dates": len(dates),
            "total_bookings": len(rows),
            "from_date": today.isoformat(),
        },
        "booked_dates": dates,
    }
