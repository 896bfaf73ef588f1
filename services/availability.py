"""Availability windows: which dates accept bookings and on what grid."""
from dataclasses import dataclass, field
from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.availability_window import AvailabilityWindow
from services.conflicts import count_live_bookings
from services.errors import Conflict, Forbidden, NotFound, SchedulingError, ValidationError
from utils.audit import log_event
from utils.serializers import serialize_window
from utils.timegrid import check_duration, minutes_between, parse_date, parse_time, resolve_now

GRID_FIELDS = ("start_time", "end_time", "slot_duration")
PATCHABLE_FIELDS = GRID_FIELDS + ("is_active", "notes")


@dataclass
class BulkResult:
    created: list = field(default_factory=list)
    skipped: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    @property
    def summary(self):
        return {
            "total_requested": len(self.created) + len(self.skipped) + len(self.errors),
            "created": len(self.created),
            "skipped": len(self.skipped),
            "errors": len(self.errors),
        }


def _check_grid(start_time, end_time, slot_duration):
    check_duration(slot_duration)
    span = minutes_between(start_time, end_time)
    if span <= 0:
        raise ValidationError("End time must be after start time")
    if span < slot_duration:
        raise ValidationError("Time range must be at least one slot duration")


def _check_notes(notes):
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("Notes must be text")
    if notes is not None and len(notes) > 500:
        raise ValidationError("Notes cannot exceed 500 characters")


def get_window(day) -> AvailabilityWindow:
    day = parse_date(day)
    window = AvailabilityWindow.query.filter_by(date=day).first()
    if not window:
        raise NotFound("Available date not found", date=day.isoformat())
    return window


def create_window(day, start_time, end_time, slot_duration=None, notes=None,
                  is_active=True, created_by=None, now=None) -> AvailabilityWindow:
    day = parse_date(day)
    start = parse_time(start_time)
    end = parse_time(end_time)
    if slot_duration is None:
        slot_duration = current_app.config.get("DEFAULT_SLOT_DURATION", 30)
    _check_grid(start, end, slot_duration)
    _check_notes(notes)

    if day < resolve_now(now).date():
        raise ValidationError("Date cannot be in the past", date=day.isoformat())

    if AvailabilityWindow.query.filter_by(date=day).first():
        raise Conflict("An availability window already exists for this date", date=day.isoformat())

    window = AvailabilityWindow(
        date=day,
        start_time=start,
        end_time=end,
        slot_duration=slot_duration,
        notes=notes,
        is_active=bool(is_active),
        created_by=created_by,
    )
    db.session.add(window)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        # uq on availability_windows.date
        raise Conflict("An availability window already exists for this date", date=day.isoformat())

    log_event("WINDOW_CREATE", actor_id=created_by, entity="availability_window", entity_id=window.id,
              metadata={"date": day.isoformat()})
    return window


def bulk_create_windows(specs, skip_existing=False, created_by=None, now=None) -> BulkResult:
    """Create many windows, one at a time.

    Each spec is a mapping with ``date``, ``start_time``, ``end_time`` and the
    optional ``slot_duration``/``notes``. A failing spec is reported and the
    rest of the batch carries on.
    """
    result = BulkResult()
    for spec in specs:
        if not isinstance(spec, dict):
            result.errors.append({"date": str(spec), "reason": "Each date entry must be an object"})
            continue
        raw_date = spec.get("date")
        try:
            day = parse_date(raw_date)
            if skip_existing and AvailabilityWindow.query.filter_by(date=day).first():
                result.skipped.append({"date": day.isoformat(), "reason": "Date already exists"})
                continue
            window = create_window(
                day,
                spec.get("start_time"),
                spec.get("end_time"),
                slot_duration=spec.get("slot_duration"),
                notes=spec.get("notes"),
                created_by=created_by,
                now=now,
            )
        except SchedulingError as exc:
            result.errors.append({"date": str(raw_date), "reason": exc.message})
            continue
        result.created.append(serialize_window(window))

    current_app.logger.info(
        "Bulk availability: %(created)s created, %(skipped)s skipped, %(errors)s errors", result.summary
    )
    return result


def update_window(day, actor_id=None, **patch) -> AvailabilityWindow:
    unknown = set(patch) - set(PATCHABLE_FIELDS)
    if unknown:
        raise ValidationError("Unknown fields", fields=sorted(unknown))

    window = get_window(day)
    touches_grid = any(patch.get(f) is not None for f in GRID_FIELDS)
    if touches_grid and count_live_bookings(window.date) > 0:
        raise Forbidden("Cannot modify time settings when there are existing bookings",
                        date=window.date.isoformat())

    start = parse_time(patch["start_time"]) if patch.get("start_time") is not None else window.start_time
    end = parse_time(patch["end_time"]) if patch.get("end_time") is not None else window.end_time
    duration = patch["slot_duration"] if patch.get("slot_duration") is not None else window.slot_duration
    if touches_grid:
        _check_grid(start, end, duration)
    if "notes" in patch:
        _check_notes(patch["notes"])
    if patch.get("is_active") is not None and not isinstance(patch["is_active"], bool):
        raise ValidationError("is_active must be true or false", is_active=str(patch["is_active"]))

    window.start_time = start
    window.end_time = end
    window.slot_duration = duration
    if patch.get("is_active") is not None:
        window.is_active = patch["is_active"]
    if "notes" in patch:
        window.notes = patch["notes"]
    db.session.commit()

    log_event("WINDOW_UPDATE", actor_id=actor_id, entity="availability_window", entity_id=window.id,
              metadata={k: v for k, v in patch.items() if v is not None})
    return window


def delete_window(day, actor_id=None):
    window = get_window(day)
    if count_live_bookings(window.date) > 0:
        raise Forbidden("Cannot delete date with existing bookings. Cancel bookings first.",
                        date=window.date.isoformat())

    window_id, day = window.id, window.date
    db.session.delete(window)
    db.session.commit()
    log_event("WINDOW_DELETE", actor_id=actor_id, entity="availability_window", entity_id=window_id,
              metadata={"date": day.isoformat()})


def max_booking_date(now=None):
    days = current_app.config.get("MAX_ADVANCE_BOOKING_DAYS", 365)
    return resolve_now(now).date() + timedelta(days=days)


def find_for_booking(day, now=None) -> AvailabilityWindow:
    """The active window customers may book on ``day``."""
    day = parse_date(day)
    now = resolve_now(now)
    if day < now.date():
        raise NotFound("Cannot book slots for past dates", date=day.isoformat())
    if day > max_booking_date(now):
        raise NotFound("Date is beyond the maximum advance booking period", date=day.isoformat())

    window = AvailabilityWindow.query.filter_by(date=day, is_active=True).first()
    if not window:
        raise NotFound("Selected date is not available for booking", date=day.isoformat())
    return window


def list_windows(start=None, end=None, active_only=True):
    q = AvailabilityWindow.query
    if active_only:
        q = q.filter(AvailabilityWindow.is_active.is_(True))
    if start is not None:
        q = q.filter(AvailabilityWindow.date >= parse_date(start))
    if end is not None:
        q = q.filter(AvailabilityWindow.date <= parse_date(end))
    return q.order_by(AvailabilityWindow.date.asc()).all()


def upcoming_windows(limit=30, now=None):
    today = resolve_now(now).date()
    return (
        AvailabilityWindow.query
        .filter(AvailabilityWindow.date >= today, AvailabilityWindow.is_active.is_(True))
        .order_by(AvailabilityWindow.date.asc())
        .limit(limit)
        .all()
    )
