from models.db import db

class ReferenceCounter(db.Model):
    """Per-minute sequence behind booking references.

    One row per ``YYYYMMDDHHmm`` minute; ``last_value`` is bumped with a single
    UPDATE so concurrent bookings in the same minute never share a suffix.
    """

    __tablename__ = "booking_reference_counters"

    minute_key = db.Column(db.String(12), primary_key=True)
    last_value = db.Column(db.Integer, nullable=False, default=0)
