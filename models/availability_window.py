from datetime import datetime
from models.db import db
from utils.timegrid import generate_slots, minutes_between

class AvailabilityWindow(db.Model):
    __tablename__ = "availability_windows"

    id = db.Column(db.Integer, primary_key=True)

    # One window per calendar date; bookings refer to it by date only
    date = db.Column(db.Date, nullable=False, unique=True, index=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    slot_duration = db.Column(db.Integer, nullable=False, default=30)  # minutes

    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    notes = db.Column(db.String(500), nullable=True)
    created_by = db.Column(db.Integer, nullable=True)  # administrator id, if known

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def generate_slots(self):
        return generate_slots(self.start_time, self.end_time, self.slot_duration)

    def is_valid_slot(self, slot) -> bool:
        return slot in self.generate_slots()

    @property
    def total_slots(self) -> int:
        return minutes_between(self.start_time, self.end_time) // self.slot_duration

    def __repr__(self):
        return f"<AvailabilityWindow {self.date} {self.start_time}-{self.end_time}/{self.slot_duration}>"
