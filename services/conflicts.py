"""Double-booking checks.

These run before every insert or move so callers get a clear error. The
partial unique index ``uq_bookings_live_slot`` on the bookings table is what
actually settles two requests racing for the same slot.
"""
from models.booking import CANCELLED, Booking
from services.errors import Conflict
from utils.timegrid import format_time, parse_date, parse_time


def live_bookings_query(day):
    return Booking.query.filter(Booking.date == parse_date(day), Booking.status != CANCELLED)


def is_slot_free(day, time_slot, exclude_booking_id=None) -> bool:
    q = live_bookings_query(day).filter(Booking.time_slot == parse_time(time_slot))
    if exclude_booking_id is not None:
        q = q.filter(Booking.id != exclude_booking_id)
    return q.first() is None


def ensure_slot_free(day, time_slot, exclude_booking_id=None):
    if not is_slot_free(day, time_slot, exclude_booking_id=exclude_booking_id):
        raise Conflict(
            "This time slot is already booked",
            date=parse_date(day).isoformat(),
            time_slot=format_time(parse_time(time_slot)),
        )


def count_live_bookings(day) -> int:
    return live_bookings_query(day).count()


def booked_times(day) -> set:
    rows = live_bookings_query(day).with_entities(Booking.time_slot).all()
    return {r.time_slot for r in rows}
