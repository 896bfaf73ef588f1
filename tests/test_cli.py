"""CLI commands run against the real clock, so dates are relative to today."""
import json
from datetime import date, timedelta

import pytest

from models.availability_window import AvailabilityWindow
from services import availability


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


def _day(offset):
    return (date.today() + timedelta(days=offset)).isoformat()


def test_open_date(runner):
    result = runner.invoke(args=["open-date", _day(3), "09:00", "12:00", "--duration", "60"])

    assert result.exit_code == 0, result.output
    assert "3 slots" in result.output
    assert AvailabilityWindow.query.count() == 1


def test_open_date_reports_errors(runner):
    result = runner.invoke(args=["open-date", _day(3), "12:00", "09:00"])

    assert result.exit_code != 0
    assert "Error" in result.output


def test_open_dates_from_file(runner, tmp_path):
    path = tmp_path / "dates.json"
    path.write_text(json.dumps([
        {"date": _day(3), "start_time": "09:00", "end_time": "17:00"},
        {"date": _day(3), "start_time": "09:00", "end_time": "17:00"},
        {"date": _day(4), "start_time": "09:00", "end_time": "10:00", "slot_duration": 30},
    ]))

    result = runner.invoke(args=["open-dates", str(path), "--skip-existing"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["summary"] == {"total_requested": 3, "created": 2, "skipped": 1, "errors": 0}


def test_slots_and_close_date(runner):
    availability.create_window(_day(3), "09:00", "10:00", slot_duration=30)

    result = runner.invoke(args=["slots", _day(3)])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["available_slots"] == 2

    result = runner.invoke(args=["close-date", _day(3)])
    assert result.exit_code == 0, result.output
    assert AvailabilityWindow.query.count() == 0


def test_next_slots(runner):
    availability.create_window(_day(2), "09:00", "10:00", slot_duration=30)

    result = runner.invoke(args=["next-slots", "--count", "1"])

    assert result.exit_code == 0, result.output
    assert result.output.strip() == f"{_day(2)} 09:00"


def test_booking_stats_empty(runner):
    result = runner.invoke(args=["booking-stats"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["total"] == 0


def test_export_windows(runner):
    availability.create_window(_day(5), "09:00", "10:00", slot_duration=30, is_active=False)

    result = runner.invoke(args=["export-windows"])

    exported = json.loads(result.output)
    assert [w["date"] for w in exported] == [_day(5)]
    assert exported[0]["is_active"] is False


def test_dashboard(runner):
    availability.create_window(_day(1), "09:00", "10:00", slot_duration=30)

    result = runner.invoke(args=["dashboard"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["active_dates"] == 1
    assert payload["total_bookings"] == 0


def test_booked_dates(runner):
    result = runner.invoke(args=["booked-dates"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["summary"]["total_bookings"] == 0
