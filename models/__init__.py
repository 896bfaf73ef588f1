from .db import db
from .audit_log import AuditLog
from .availability_window import AvailabilityWindow
from .booking import Booking
from .reference_counter import ReferenceCounter
