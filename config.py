import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to this file as smartslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "smartslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Booking references look like SM202509251030 + sequence
    BOOKING_REFERENCE_PREFIX = os.getenv("BOOKING_REFERENCE_PREFIX", "SM")

    # How far ahead customers may book
    MAX_ADVANCE_BOOKING_DAYS = int(os.getenv("MAX_ADVANCE_BOOKING_DAYS", "365"))

    # Slot grid
    DEFAULT_SLOT_DURATION = 30          # minutes

    # Cancellation policy
    CANCEL_CUTOFF_HOURS = int(os.getenv("CANCEL_CUTOFF_HOURS", "2"))

    # Check-in allowed this many minutes either side of the slot
    CHECK_IN_WINDOW_MINUTES = 30

    # "Next available slots" look-ahead
    NEXT_SLOTS_LOOKAHEAD_DAYS = 30

    # Notifications (booking confirmations)
    NOTIFICATIONS_ENABLED = os.getenv("NOTIFICATIONS_ENABLED", "true").lower() == "true"
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    # Basic app settings
    DEBUG = False
