"""Booking lifecycle: reserve, look up, edit, cancel, reschedule, check in."""
import re
from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError

from models import db
from models.booking import (
    ACTIVE_STATUSES,
    BOOKING_SOURCES,
    BOOKING_STATUSES,
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    PAYMENT_STATUSES,
    PENDING,
    TERMINAL_STATUSES,
    Booking,
)
from services.availability import find_for_booking, max_booking_date
from services.conflicts import ensure_slot_free
from services.errors import (
    Conflict,
    ExhaustedSequence,
    InvalidState,
    NotFound,
    SchedulingError,
    TooLateToCancel,
    ValidationError,
)
from services.filters import BookingFilter
from services.notifications import notify_booking_created
from services.references import next_booking_reference
from utils.audit import log_event
from utils.timegrid import format_time, is_past_slot, parse_date, parse_time, resolve_now

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]{2,}$")
PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")


def clean_customer(customer, partial=False) -> dict:
    """Normalise customer fields; ``partial`` allows a subset for edits."""
    if not isinstance(customer, dict):
        raise ValidationError("Customer details are required")

    errors = {}
    cleaned = {}

    if "name" in customer or not partial:
        name = (customer.get("name") or "").strip()
        if not 2 <= len(name) <= 100:
            errors["name"] = "Customer name must be between 2 and 100 characters"
        cleaned["name"] = name

    if "email" in customer or not partial:
        email = (customer.get("email") or "").strip().lower()
        if not EMAIL_RE.match(email):
            errors["email"] = "Please enter a valid email"
        cleaned["email"] = email

    if "phone" in customer or not partial:
        phone = re.sub(r"[\s\-()]", "", customer.get("phone") or "")
        if not PHONE_RE.match(phone):
            errors["phone"] = "Please enter a valid phone number"
        cleaned["phone"] = phone

    if "notes" in customer:
        notes = (customer.get("notes") or "").strip() or None
        if notes and len(notes) > 1000:
            errors["notes"] = "Notes cannot exceed 1000 characters"
        cleaned["notes"] = notes

    if errors:
        raise ValidationError("Customer validation failed", errors=errors)
    return cleaned


def _check_bookable(day, slot, now, exclude_booking_id=None):
    """Everything a slot must satisfy before a booking may occupy it."""
    if day < now.date():
        raise ValidationError("Cannot book dates in the past", date=day.isoformat())
    if is_past_slot(day, slot, now):
        raise ValidationError("Cannot book past time slots", time_slot=format_time(slot))
    if day > max_booking_date(now):
        raise ValidationError("Date is beyond the maximum advance booking period", date=day.isoformat())

    window = find_for_booking(day, now=now)
    if not window.is_valid_slot(slot):
        raise ValidationError("Invalid time slot for the selected date",
                              date=day.isoformat(), time_slot=format_time(slot))

    ensure_slot_free(day, slot, exclude_booking_id=exclude_booking_id)
    return window


def _commit_slot_change(day, slot):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        # Unique index uq_bookings_live_slot triggers here when another request won the race
        raise Conflict("This time slot is already booked",
                       date=day.isoformat(), time_slot=format_time(slot))


def create_booking(day, time_slot, customer, status=CONFIRMED, source="online",
                   payment_status="not-required", created_by=None, now=None) -> Booking:
    now = resolve_now(now)
    day = parse_date(day)
    slot = parse_time(time_slot)
    details = clean_customer(customer)

    if status not in (CONFIRMED, PENDING):
        raise ValidationError("New bookings start as confirmed or pending", status=status)
    if source not in BOOKING_SOURCES:
        raise ValidationError("Unknown booking source", source=source)
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError("Unknown payment status", payment_status=payment_status)

    _check_bookable(day, slot, now)

    try:
        reference = next_booking_reference(now)
    except ExhaustedSequence:
        db.session.rollback()
        raise

    booking = Booking(
        booking_reference=reference,
        date=day,
        time_slot=slot,
        customer_name=details["name"],
        customer_email=details["email"],
        customer_phone=details["phone"],
        customer_notes=details.get("notes"),
        status=status,
        source=source,
        payment_status=payment_status,
        created_by=created_by,
    )
    db.session.add(booking)
    _commit_slot_change(day, slot)

    log_event("BOOKING_CREATE", actor_id=created_by, entity="booking", entity_id=booking.id,
              metadata={"reference": reference, "date": day.isoformat(), "time_slot": format_time(slot)})
    notify_booking_created(booking)
    return booking


def get_booking(booking_id) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found", id=booking_id)
    return booking


def get_booking_by_reference(reference) -> Booking:
    booking = Booking.query.filter_by(booking_reference=(reference or "").strip()).first()
    if not booking:
        raise NotFound("Booking not found", reference=reference)
    return booking


def find_bookings(criteria=None, limit=200, offset=0):
    q = (criteria or BookingFilter()).apply(Booking.query)
    return (
        q.order_by(Booking.date.desc(), Booking.time_slot.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def find_customer_bookings(email=None, phone=None):
    if not email and not phone:
        raise ValidationError("Email or phone number is required")
    return find_bookings(BookingFilter(email=email, phone=phone))


def bookings_for_date(day, include_cancelled=False):
    q = BookingFilter(day=day, exclude_cancelled=not include_cancelled).apply(Booking.query)
    return q.order_by(Booking.time_slot.asc()).all()


def _ensure_open(booking, verb):
    if booking.status in TERMINAL_STATUSES:
        raise InvalidState(f"Cannot {verb} {booking.status} booking", status=booking.status)


def update_customer_details(booking_id, customer=None, notes=None, now=None) -> Booking:
    now = resolve_now(now)
    booking = get_booking(booking_id)
    _ensure_open(booking, "modify")
    if booking.is_past(now):
        raise InvalidState("Cannot modify past bookings")

    if customer:
        details = clean_customer(customer, partial=True)
        booking.customer_name = details.get("name", booking.customer_name)
        booking.customer_email = details.get("email", booking.customer_email)
        booking.customer_phone = details.get("phone", booking.customer_phone)
        if "notes" in details:
            booking.customer_notes = details["notes"]
    if notes is not None:
        booking.customer_notes = clean_customer({"notes": notes}, partial=True)["notes"]

    db.session.commit()
    log_event("BOOKING_UPDATE", entity="booking", entity_id=booking.id)
    return booking


def cancel_booking(booking_id, reason=None, actor_id=None, now=None) -> Booking:
    """Customer cancellation, refused inside the cut-off before the start."""
    now = resolve_now(now)
    booking = get_booking(booking_id)
    if booking.status == CANCELLED:
        raise InvalidState("Booking is already cancelled")
    if booking.status == COMPLETED:
        raise InvalidState("Cannot cancel completed booking")

    cutoff_hours = current_app.config.get("CANCEL_CUTOFF_HOURS", 2)
    until_start = booking.starts_at - now
    if timedelta(0) < until_start < timedelta(hours=cutoff_hours):
        raise TooLateToCancel(f"Cannot cancel booking within {cutoff_hours} hours of appointment time")

    _mark_cancelled(booking, reason, now)
    db.session.commit()

    log_event("BOOKING_CANCEL", actor_id=actor_id, entity="booking", entity_id=booking.id,
              metadata={"reason": booking.cancel_reason})
    return booking


def admin_cancel_booking(booking_id, reason=None, actor_id=None, now=None) -> Booking:
    booking = get_booking(booking_id)
    if booking.status == CANCELLED:
        raise InvalidState("Booking is already cancelled")

    _mark_cancelled(booking, reason or "Admin cancellation", resolve_now(now))
    db.session.commit()

    log_event("ADMIN_BOOKING_CANCEL", actor_id=actor_id, entity="booking", entity_id=booking.id,
              metadata={"reason": booking.cancel_reason})
    return booking


def _mark_cancelled(booking, reason, now):
    booking.status = CANCELLED
    booking.cancelled_at = now
    reason = (reason or "").strip() or None
    if reason:
        booking.cancel_reason = reason[:500]


def reschedule_booking(booking_id, new_date, new_time_slot, reason=None, now=None) -> Booking:
    now = resolve_now(now)
    booking = get_booking(booking_id)
    _ensure_open(booking, "reschedule")

    day = parse_date(new_date)
    slot = parse_time(new_time_slot)
    _check_bookable(day, slot, now, exclude_booking_id=booking.id)

    old = f"{booking.date.isoformat()} {format_time(booking.time_slot)}"
    booking.date = day
    booking.time_slot = slot
    if reason:
        line = f"Rescheduled from {old}: {reason.strip()}"
        booking.customer_notes = f"{booking.customer_notes}\n\n{line}" if booking.customer_notes else line
    _commit_slot_change(day, slot)

    log_event("BOOKING_RESCHEDULE", entity="booking", entity_id=booking.id,
              metadata={"from": old, "to": f"{day.isoformat()} {format_time(slot)}"})
    return booking


def check_in(booking_id, now=None) -> Booking:
    now = resolve_now(now)
    booking = get_booking(booking_id)
    if booking.status != CONFIRMED:
        raise InvalidState("Only confirmed bookings can be checked in", status=booking.status)
    if booking.date != now.date():
        raise InvalidState("Can only check in for today's bookings")

    window_minutes = current_app.config.get("CHECK_IN_WINDOW_MINUTES", 30)
    current = now.replace(second=0, microsecond=0)
    if abs(booking.starts_at - current) > timedelta(minutes=window_minutes):
        raise InvalidState(f"Can only check in within {window_minutes} minutes of booking time")

    booking.checked_in_at = now
    db.session.commit()
    log_event("BOOKING_CHECK_IN", entity="booking", entity_id=booking.id)
    return booking


def set_status(booking_id, status, reason=None, actor_id=None, now=None) -> Booking:
    """Admin status change. Cancelled and completed bookings are never reactivated."""
    if status not in BOOKING_STATUSES:
        raise ValidationError("Unknown booking status", status=status)

    booking = get_booking(booking_id)
    old_status = booking.status
    if old_status in TERMINAL_STATUSES and status in ACTIVE_STATUSES:
        raise InvalidState(f"Cannot move a {old_status} booking back to {status}")
    if old_status == status:
        return booking

    if status == CANCELLED:
        _mark_cancelled(booking, reason, resolve_now(now))
    else:
        booking.status = status
    # leaving "cancelled" puts the row back under the live-slot index
    _commit_slot_change(booking.date, booking.time_slot)

    log_event("BOOKING_STATUS", actor_id=actor_id, entity="booking", entity_id=booking.id,
              metadata={"from": old_status, "to": status, "reason": reason})
    return booking


def bulk_update_bookings(booking_ids, action, status=None, reason=None, actor_id=None, now=None):
    if not booking_ids:
        raise ValidationError("Booking IDs are required")
    if action not in ("update_status", "cancel"):
        raise ValidationError('Invalid action. Use "update_status" or "cancel"', action=action)
    if action == "update_status" and not status:
        raise ValidationError("status is required for update_status")

    result = {"matched": 0, "modified": 0, "errors": []}
    for booking_id in booking_ids:
        try:
            booking = get_booking(booking_id)
        except NotFound as exc:
            result["errors"].append({"id": booking_id, "reason": exc.message})
            continue
        result["matched"] += 1

        before = booking.status
        try:
            if action == "cancel":
                admin_cancel_booking(booking_id, reason=reason, actor_id=actor_id, now=now)
            else:
                set_status(booking_id, status, reason=reason, actor_id=actor_id, now=now)
        except SchedulingError as exc:
            result["errors"].append({"id": booking_id, "reason": exc.message})
            continue
        if booking.status != before:
            result["modified"] += 1
    return result
