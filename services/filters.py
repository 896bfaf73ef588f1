from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import or_

from models.booking import BOOKING_STATUSES, Booking
from services.errors import ValidationError
from utils.timegrid import parse_date


@dataclass
class BookingFilter:
    """Criteria for booking listings.

    Unset fields do not filter. ``day`` wins over ``start``/``end``. When both
    ``email`` and ``phone`` are given a booking matches on either one, which is
    how customers look up their own bookings.
    """

    day: Optional[date] = None
    start: Optional[date] = None
    end: Optional[date] = None
    status: Optional[str] = None
    exclude_cancelled: bool = False
    email: Optional[str] = None
    phone: Optional[str] = None
    source: Optional[str] = None

    def __post_init__(self):
        for name in ("day", "start", "end"):
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, parse_date(value))
        if self.status is not None and self.status not in BOOKING_STATUSES:
            raise ValidationError("Unknown booking status", status=self.status)
        if self.email:
            self.email = self.email.strip().lower()
        if self.phone:
            self.phone = self.phone.strip()

    def apply(self, query):
        if self.day is not None:
            query = query.filter(Booking.date == self.day)
        else:
            if self.start is not None:
                query = query.filter(Booking.date >= self.start)
            if self.end is not None:
                query = query.filter(Booking.date <= self.end)

        if self.status:
            query = query.filter(Booking.status == self.status)
        elif self.exclude_cancelled:
            query = query.filter(Booking.status != "cancelled")

        if self.email and self.phone:
            query = query.filter(or_(Booking.customer_email == self.email, Booking.customer_phone == self.phone))
        elif self.email:
            query = query.filter(Booking.customer_email == self.email)
        elif self.phone:
            query = query.filter(Booking.customer_phone == self.phone)

        if self.source:
            query = query.filter(Booking.source == self.source)
        return query
