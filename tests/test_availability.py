"""Tests for availability windows."""
from datetime import date, datetime, time

import pytest

from models.audit_log import AuditLog
from services import availability, bookings
from services.errors import Conflict, Forbidden, NotFound, ValidationError
from tests.conftest import NOW, WINDOW_DAY


class TestCreateWindow:
    def test_create_window(self, app):
        w = availability.create_window("2025-10-01", "09:00", "12:00", slot_duration=45,
                                       notes="Morning only", created_by=7, now=NOW)

        assert w.id is not None
        assert w.date == date(2025, 10, 1)
        assert w.start_time == time(9, 0)
        assert w.end_time == time(12, 0)
        assert w.is_active is True
        assert w.total_slots == 4
        assert w.created_by == 7

    def test_default_duration_comes_from_config(self, app):
        app.config["DEFAULT_SLOT_DURATION"] = 60

        w = availability.create_window("2025-10-01", "09:00", "12:00", now=NOW)

        assert w.slot_duration == 60

    def test_duplicate_date_conflicts(self, window):
        with pytest.raises(Conflict):
            availability.create_window(WINDOW_DAY, "10:00", "11:00", now=NOW)

    def test_rejects_past_date(self, app):
        with pytest.raises(ValidationError):
            availability.create_window("2025-09-19", "09:00", "17:00", now=NOW)

    @pytest.mark.parametrize("start,end,duration", [
        ("10:00", "09:00", 30),
        ("09:00", "09:00", 30),
        ("09:00", "09:20", 30),
        ("09:00", "17:00", 10),
        ("09:00", "17:00", 150),
    ])
    def test_rejects_bad_grid(self, app, start, end, duration):
        with pytest.raises(ValidationError):
            availability.create_window("2025-10-01", start, end, slot_duration=duration, now=NOW)

    def test_rejects_long_notes(self, app):
        with pytest.raises(ValidationError):
            availability.create_window("2025-10-01", "09:00", "17:00", notes="x" * 501, now=NOW)

    def test_writes_audit_row(self, window):
        row = AuditLog.query.filter_by(action="WINDOW_CREATE").one()

        assert row.entity == "availability_window"
        assert row.entity_id == str(window.id)


class TestUpdateWindow:
    def test_update_grid_without_bookings(self, window):
        w = availability.update_window(WINDOW_DAY, start_time="10:00", slot_duration=60)

        assert w.start_time == time(10, 0)
        assert w.total_slots == 7

    def test_grid_change_forbidden_with_live_booking(self, window, customer):
        bookings.create_booking(WINDOW_DAY, "10:00", customer, now=NOW)

        with pytest.raises(Forbidden):
            availability.update_window(WINDOW_DAY, end_time="12:00")

    def test_active_flag_and_notes_allowed_with_live_booking(self, window, customer):
        bookings.create_booking(WINDOW_DAY, "10:00", customer, now=NOW)

        w = availability.update_window(WINDOW_DAY, is_active=False, notes="Closed for stocktake")

        assert w.is_active is False
        assert w.notes == "Closed for stocktake"

    def test_grid_change_allowed_after_cancellation(self, window, customer):
        b = bookings.create_booking(WINDOW_DAY, "10:00", customer, now=NOW)
        bookings.cancel_booking(b.id, now=NOW)

        w = availability.update_window(WINDOW_DAY, slot_duration=60)

        assert w.slot_duration == 60

    def test_update_revalidates_grid(self, window):
        with pytest.raises(ValidationError):
            availability.update_window(WINDOW_DAY, end_time="08:00")

    @pytest.mark.parametrize("value", ["false", 0, "yes"])
    def test_is_active_must_be_a_bool(self, window, value):
        with pytest.raises(ValidationError):
            availability.update_window(WINDOW_DAY, is_active=value)

        assert availability.get_window(WINDOW_DAY).is_active is True

    def test_notes_must_be_text(self, window):
        with pytest.raises(ValidationError):
            availability.update_window(WINDOW_DAY, notes=["closed"])

    def test_unknown_field(self, window):
        with pytest.raises(ValidationError):
            availability.update_window(WINDOW_DAY, date="2025-09-26")

    def test_missing_window(self, app):
        with pytest.raises(NotFound):
            availability.update_window("2025-10-01", is_active=False)


class TestDeleteWindow:
    def test_delete(self, window):
        availability.delete_window(WINDOW_DAY)

        with pytest.raises(NotFound):
            availability.get_window(WINDOW_DAY)

    def test_delete_forbidden_with_live_booking(self, window, customer):
        bookings.create_booking(WINDOW_DAY, "10:00", customer, now=NOW)

        with pytest.raises(Forbidden):
            availability.delete_window(WINDOW_DAY)

    def test_delete_allowed_when_only_cancelled_bookings(self, window, customer):
        b = bookings.create_booking(WINDOW_DAY, "10:00", customer, now=NOW)
        bookings.cancel_booking(b.id, now=NOW)

        availability.delete_window(WINDOW_DAY)

        assert availability.list_windows(active_only=False) == []


class TestFindForBooking:
    def test_returns_active_window(self, window):
        assert availability.find_for_booking(WINDOW_DAY, now=NOW).id == window.id

    def test_missing_date(self, window):
        with pytest.raises(NotFound):
            availability.find_for_booking("2025-09-26", now=NOW)

    def test_inactive_window(self, window):
        availability.update_window(WINDOW_DAY, is_active=False)

        with pytest.raises(NotFound):
            availability.find_for_booking(WINDOW_DAY, now=NOW)

    def test_past_date(self, window):
        with pytest.raises(NotFound):
            availability.find_for_booking(WINDOW_DAY, now=datetime(2025, 9, 26, 9, 0))

    def test_beyond_horizon(self, app, window):
        app.config["MAX_ADVANCE_BOOKING_DAYS"] = 3

        with pytest.raises(NotFound):
            availability.find_for_booking(WINDOW_DAY, now=NOW)


class TestBulkCreate:
    def test_duplicate_inside_batch(self, app):
        result = availability.bulk_create_windows([
            {"date": "2025-10-01", "start_time": "09:00", "end_time": "17:00", "slot_duration": 30},
            {"date": "2025-10-01", "start_time": "09:00", "end_time": "17:00", "slot_duration": 30},
        ], now=NOW)

        assert len(result.created) == 1
        assert result.created[0]["date"] == "2025-10-01"
        assert len(result.errors) == 1
        assert result.errors[0]["date"] == "2025-10-01"
        assert "already exists" in result.errors[0]["reason"]

    def test_one_bad_item_does_not_abort_batch(self, app):
        result = availability.bulk_create_windows([
            {"date": "2025-10-01", "start_time": "09:00", "end_time": "17:00"},
            {"date": "2025-10-02", "start_time": "17:00", "end_time": "09:00"},
            {"date": "not-a-date", "start_time": "09:00", "end_time": "17:00"},
            {"date": "2025-10-03", "start_time": "09:00", "end_time": "12:00", "slot_duration": 60},
        ], now=NOW)

        assert [c["date"] for c in result.created] == ["2025-10-01", "2025-10-03"]
        assert [e["date"] for e in result.errors] == ["2025-10-02", "not-a-date"]
        assert result.summary == {"total_requested": 4, "created": 2, "skipped": 0, "errors": 2}

    def test_malformed_items_are_reported(self, app):
        result = availability.bulk_create_windows([
            {"date": "2025-10-01", "start_time": "09:00", "end_time": "17:00"},
            "2025-10-02",
            {"date": "2025-10-03", "start_time": "09:00", "end_time": "17:00", "notes": 5},
            {"date": "2025-10-04", "start_time": "09:00", "end_time": "17:00"},
        ], now=NOW)

        assert [c["date"] for c in result.created] == ["2025-10-01", "2025-10-04"]
        assert [e["date"] for e in result.errors] == ["2025-10-02", "2025-10-03"]
        assert result.summary == {"total_requested": 4, "created": 2, "skipped": 0, "errors": 2}

    def test_skip_existing(self, window):
        result = availability.bulk_create_windows([
            {"date": WINDOW_DAY, "start_time": "09:00", "end_time": "17:00"},
            {"date": "2025-10-01", "start_time": "09:00", "end_time": "17:00"},
        ], skip_existing=True, now=NOW)

        assert result.skipped == [{"date": WINDOW_DAY, "reason": "Date already exists"}]
        assert len(result.created) == 1
        assert result.errors == []


class TestListing:
    def test_list_and_upcoming(self, app):
        for day in ("2025-09-22", "2025-09-24", "2025-09-26"):
            availability.create_window(day, "09:00", "10:00", now=NOW)
        availability.update_window("2025-09-24", is_active=False)

        assert [w.date.isoformat() for w in availability.list_windows()] == ["2025-09-22", "2025-09-26"]
        assert len(availability.list_windows(active_only=False)) == 3
        assert [w.date.isoformat() for w in availability.list_windows(start="2025-09-23")] == ["2025-09-26"]

        upcoming = availability.upcoming_windows(limit=5, now=datetime(2025, 9, 23, 9, 0))
        assert [w.date.isoformat() for w in upcoming] == ["2025-09-26"]
