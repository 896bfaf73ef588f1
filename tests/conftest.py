from datetime import datetime

import pytest

from app import create_app
from models import db as _db
from services import availability

# Fixed clock for service calls: Saturday morning, five days before WINDOW_DAY
NOW = datetime(2025, 9, 20, 8, 0)
WINDOW_DAY = "2025-09-25"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///" + str(tmp_path / "test.db"),
        "NOTIFICATIONS_ENABLED": False,
        "SMTP_HOST": None,
    })
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def window(app):
    """09:00-17:00 in 30 minute slots: 16 slots."""
    return availability.create_window(WINDOW_DAY, "09:00", "17:00", slot_duration=30, now=NOW)


@pytest.fixture
def customer():
    return {"name": "Alice Example", "email": "Alice@Example.com", "phone": "+358401234567"}


@pytest.fixture
def other_customer():
    return {"name": "Bob Example", "email": "bob@example.com", "phone": "+358409876543"}
