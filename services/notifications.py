from flask import current_app

from utils.emailer import send_email
from utils.timegrid import format_time


def _confirmation_body(booking):
    return (
        f"Hi {booking.customer_name},\n\n"
        f"Your booking {booking.booking_reference} is {booking.status} for "
        f"{booking.date.isoformat()} at {format_time(booking.time_slot)}.\n\n"
        "Keep this reference to cancel or reschedule.\n\n"
        "Thank you,\nSmartSlot"
    )


def notify_booking_created(booking):
    """Send the confirmation mails. Never raises; a booking stands even if mail fails."""
    if not current_app.config.get("NOTIFICATIONS_ENABLED", True):
        return

    try:
        ok, error = send_email(
            booking.customer_email,
            f"Booking confirmed: {booking.booking_reference}",
            _confirmation_body(booking),
        )
        if not ok:
            current_app.logger.warning("Confirmation for %s not sent: %s", booking.booking_reference, error)

        admin_email = current_app.config.get("ADMIN_EMAIL")
        if admin_email:
            ok, error = send_email(
                admin_email,
                f"New booking {booking.booking_reference}",
                f"{booking.customer_name} ({booking.customer_email}, {booking.customer_phone}) booked "
                f"{booking.date.isoformat()} {format_time(booking.time_slot)} via {booking.source}.",
            )
            if not ok:
                current_app.logger.warning("Admin notice for %s not sent: %s", booking.booking_reference, error)
    except Exception:
        current_app.logger.exception("Notification dispatch failed for %s", booking.booking_reference)
