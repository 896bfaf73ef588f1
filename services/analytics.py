from datetime import timedelta

from sqlalchemy import case, func

from models.availability_window import AvailabilityWindow
from models.booking import (
    ACTIVE_STATUSES,
    BOOKING_STATUSES,
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    Booking,
)
from services.availability import upcoming_windows
from services.errors import ValidationError
from services.filters import BookingFilter
from utils.serializers import serialize_booking, serialize_window
from utils.timegrid import format_time, month_range, resolve_now


def _count_if(condition):
    return func.sum(case((condition, 1), else_=0))


def status_counts(criteria=None) -> dict:
    q = (criteria or BookingFilter()).apply(Booking.query)
    rows = q.with_entities(Booking.status, func.count(Booking.id)).group_by(Booking.status).all()
    counts = {status: 0 for status in BOOKING_STATUSES}
    counts.update({status: n for status, n in rows})
    return counts


def booking_stats(start=None, end=None) -> dict:
    counts = status_counts(BookingFilter(start=start, end=end))
    return {"total": sum(counts.values()), **counts}


def daily_stats(start, end):
    q = BookingFilter(start=start, end=end).apply(Booking.query)
    rows = (
        q.with_entities(
            Booking.date,
            func.count(Booking.id),
            _count_if(Booking.status == CONFIRMED),
            _count_if(Booking.status == CANCELLED),
        )
        .group_by(Booking.date)
        .order_by(Booking.date.asc())
        .all()
    )
    return [
        {"date": d.isoformat(), "total": total, "confirmed": confirmed or 0, "cancelled": cancelled or 0}
        for d, total, confirmed, cancelled in rows
    ]


def popular_time_slots(start=None, end=None, limit=10):
    q = BookingFilter(start=start, end=end).apply(Booking.query)
    rows = (
        q.with_entities(Booking.time_slot, func.count(Booking.id).label("n"))
        .group_by(Booking.time_slot)
        .order_by(func.count(Booking.id).desc(), Booking.time_slot.asc())
        .limit(limit)
        .all()
    )
    return [{"time_slot": format_time(t), "bookings": n} for t, n in rows]


def customer_stats(email=None, phone=None, now=None) -> dict:
    if not email and not phone:
        raise ValidationError("Email or phone number is required")
    today = resolve_now(now).date()
    criteria = BookingFilter(email=email, phone=phone)
    q = criteria.apply(Booking.query)
    total, confirmed, completed, cancelled, upcoming = q.with_entities(
        func.count(Booking.id),
        _count_if(Booking.status == CONFIRMED),
        _count_if(Booking.status == COMPLETED),
        _count_if(Booking.status == CANCELLED),
        _count_if((Booking.date >= today) & Booking.status.in_(ACTIVE_STATUSES)),
    ).one()
    return {
        "total": total,
        "confirmed": confirmed or 0,
        "completed": completed or 0,
        "cancelled": cancelled or 0,
        "upcoming": upcoming or 0,
    }


def _count(criteria) -> int:
    return criteria.apply(Booking.query).count()


def dashboard(now=None) -> dict:
    """Admin landing view: headline counts, latest bookings and what is coming up.

    Weeks run Monday to Sunday. Upcoming bookings start today, including
    today's earlier slots, and are ordered by start time.
    """
    today = resolve_now(now).date()
    week_start = today - timedelta(days=today.weekday())
    month_start, month_end = month_range(today.month, today.year)

    recent = Booking.query.order_by(Booking.created_at.desc(), Booking.id.desc()).limit(5).all()
    upcoming = (
        BookingFilter(start=today).apply(Booking.query)
        .filter(Booking.status.in_(ACTIVE_STATUSES))
        .order_by(Booking.date.asc(), Booking.time_slot.asc())
        .limit(10)
        .all()
    )
    return {
        "active_dates": AvailabilityWindow.query.filter(AvailabilityWindow.is_active.is_(True)).count(),
        "total_bookings": _count(BookingFilter()),
        "today_bookings": _count(BookingFilter(day=today)),
        "this_week_bookings": _count(BookingFilter(start=week_start, end=week_start + timedelta(days=6))),
        "this_month_bookings": _count(BookingFilter(start=month_start, end=month_end)),
        "status_counts": status_counts(),
        "recent_bookings": [serialize_booking(b) for b in recent],
        "upcoming_bookings": [serialize_booking(b) for b in upcoming],
        "upcoming_dates": [serialize_window(w) for w in upcoming_windows(limit=10, now=now)],
    }
