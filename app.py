import json

import click
from flask import Flask
from flask_migrate import Migrate

from config import Config
from models import db
from services.errors import SchedulingError


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    register_cli(app)

    return app

#-------------------------
from services import availability, schedule
from services.analytics import booking_stats, dashboard
from utils.serializers import serialize_slot, serialize_window
from utils.timegrid import format_time


def _echo_json(payload):
    click.echo(json.dumps(payload, indent=2, default=str))


def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables (local development without migrations)."""
        db.create_all()
        click.echo("Database initialised")

    @app.cli.command("open-date")
    @click.argument("date")
    @click.argument("start_time")
    @click.argument("end_time")
    @click.option("--duration", type=int, default=None, help="Slot length in minutes (15-120).")
    @click.option("--notes", default=None)
    @click.option("--inactive", is_flag=True, help="Create the window switched off.")
    def open_date(date, start_time, end_time, duration, notes, inactive):
        """Open DATE for bookings between START_TIME and END_TIME."""
        try:
            window = availability.create_window(
                date, start_time, end_time, slot_duration=duration, notes=notes, is_active=not inactive
            )
        except SchedulingError as exc:
            raise click.ClickException(exc.message)
        click.echo(f"{window.date} open {format_time(window.start_time)}-{format_time(window.end_time)}, "
                   f"{window.total_slots} slots")

    @app.cli.command("open-dates")
    @click.argument("path", type=click.File("r"))
    @click.option("--skip-existing", is_flag=True, help="Report dates that already exist as skipped.")
    def open_dates(path, skip_existing):
        """Bulk-open dates from a JSON list of window specs."""
        try:
            specs = json.load(path)
        except ValueError as exc:
            raise click.ClickException(f"Invalid JSON: {exc}")
        if not isinstance(specs, list):
            raise click.ClickException("Expected a JSON list of dates")
        result = availability.bulk_create_windows(specs, skip_existing=skip_existing)
        _echo_json({"summary": result.summary, "skipped": result.skipped, "errors": result.errors})

    @app.cli.command("close-date")
    @click.argument("date")
    def close_date(date):
        """Delete the availability window for DATE."""
        try:
            availability.delete_window(date)
        except SchedulingError as exc:
            raise click.ClickException(exc.message)
        click.echo(f"{date} closed")

    @app.cli.command("windows")
    @click.option("--start", default=None)
    @click.option("--end", default=None)
    def windows(start, end):
        """List windows with booked/free slot counts."""
        try:
            _echo_json(schedule.window_overview(start, end))
        except SchedulingError as exc:
            raise click.ClickException(exc.message)

    @app.cli.command("slots")
    @click.argument("date")
    @click.option("--all", "show_all", is_flag=True, help="Admin view: include inactive and past dates.")
    def slots(date, show_all):
        """Show the slot grid for DATE."""
        try:
            day = schedule.slots_for_date(date, bookable_only=not show_all)
        except SchedulingError as exc:
            raise click.ClickException(exc.message)
        _echo_json({
            "date": day.date.isoformat(),
            "total_slots": day.total_slots,
            "booked_slots": day.booked_slots,
            "available_slots": day.available_slots,
            "slots": [serialize_slot(s) for s in day.slots],
        })

    @app.cli.command("calendar")
    @click.argument("month", type=int)
    @click.argument("year", type=int)
    def calendar(month, year):
        """Per-day availability for MONTH/YEAR."""
        try:
            cal = schedule.calendar_for_month(month, year)
        except SchedulingError as exc:
            raise click.ClickException(exc.message)
        for d in cal.days:
            if not d.is_available:
                continue
            state = "full" if d.is_fully_booked else f"{d.available_slots}/{d.total_slots} free"
            click.echo(f"{d.date.isoformat()}  {state}")

    @app.cli.command("next-slots")
    @click.option("--count", type=int, default=5)
    @click.option("--from", "from_date", default=None)
    def next_slots(count, from_date):
        """Earliest free slots."""
        try:
            found = schedule.next_available_slots(count=count, from_date=from_date)
        except SchedulingError as exc:
            raise click.ClickException(exc.message)
        for s in found:
            click.echo(f"{s.date.isoformat()} {format_time(s.time_slot)}")

    @app.cli.command("booking-stats")
    @click.option("--start", default=None)
    @click.option("--end", default=None)
    def stats(start, end):
        """Booking totals by status."""
        try:
            _echo_json(booking_stats(start, end))
        except SchedulingError as exc:
            raise click.ClickException(exc.message)

    @app.cli.command("dashboard")
    def admin_dashboard():
        """Headline counts, recent and upcoming bookings."""
        _echo_json(dashboard())

    @app.cli.command("booked-dates")
    def booked_dates():
        """Live bookings from today on, grouped by date."""
        _echo_json(schedule.booked_dates())

    @app.cli.command("export-windows")
    @click.option("--start", default=None)
    @click.option("--end", default=None)
    def export_windows(start, end):
        """Dump windows as JSON (input format of open-dates plus ids)."""
        try:
            _echo_json([serialize_window(w) for w in availability.list_windows(start, end, active_only=False)])
        except SchedulingError as exc:
            raise click.ClickException(exc.message)

#-------------------------
