from datetime import datetime
from models.db import db

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
COMPLETED = "completed"
NO_SHOW = "no-show"

BOOKING_STATUSES = (PENDING, CONFIRMED, CANCELLED, COMPLETED, NO_SHOW)
# Customer-initiated operations (cancel, reschedule, check-in, edit) stop here
TERMINAL_STATUSES = (CANCELLED, COMPLETED)
# Statuses that keep a slot occupied for upcoming-booking counts
ACTIVE_STATUSES = (PENDING, CONFIRMED)

BOOKING_SOURCES = ("online", "phone", "walk-in", "admin")
PAYMENT_STATUSES = ("pending", "paid", "refunded", "not-required")

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)
    booking_reference = db.Column(db.String(32), nullable=False, unique=True, index=True)

    date = db.Column(db.Date, nullable=False, index=True)
    time_slot = db.Column(db.Time, nullable=False)

    customer_name = db.Column(db.String(100), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False, index=True)
    customer_phone = db.Column(db.String(20), nullable=False, index=True)
    customer_notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default=CONFIRMED, index=True)
    # status values: pending, confirmed, cancelled, completed, no-show
    source = db.Column(db.String(20), nullable=False, default="online")
    payment_status = db.Column(db.String(20), nullable=False, default="not-required")
    created_by = db.Column(db.Integer, nullable=True)  # null for customer bookings

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(500), nullable=True)
    checked_in_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        # Hard business-rule: one live booking per slot. Cancelled rows are kept
        # for the audit trail, so the index only covers the others.
        db.Index(
            "uq_bookings_live_slot",
            "date",
            "time_slot",
            unique=True,
            sqlite_where=db.text("status != 'cancelled'"),
            postgresql_where=db.text("status != 'cancelled'"),
        ),
        db.Index("ix_bookings_date_status", "date", "status"),
    )

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.time_slot)

    def is_upcoming(self, now: datetime) -> bool:
        return self.starts_at > now and self.status in ACTIVE_STATUSES

    def is_past(self, now: datetime) -> bool:
        return self.starts_at < now

    def __repr__(self):
        return f"<Booking {self.booking_reference} {self.date} {self.time_slot} {self.status}>"
