from utils.timegrid import format_time


def _iso(value):
    return value.isoformat() if value else None


def serialize_window(w):
    return {
        "id": w.id,
        "date": w.date.isoformat(),
        "start_time": format_time(w.start_time),
        "end_time": format_time(w.end_time),
        "slot_duration": w.slot_duration,
        "total_slots": w.total_slots,
        "is_active": w.is_active,
        "notes": w.notes,
        "created_by": w.created_by,
        "created_at": _iso(w.created_at),
    }


def serialize_booking(b):
    return {
        "id": b.id,
        "booking_reference": b.booking_reference,
        "date": b.date.isoformat(),
        "time_slot": format_time(b.time_slot),
        "customer": {
            "name": b.customer_name,
            "email": b.customer_email,
            "phone": b.customer_phone,
            "notes": b.customer_notes,
        },
        "status": b.status,
        "source": b.source,
        "payment_status": b.payment_status,
        "created_at": _iso(b.created_at),
        "cancelled_at": _iso(b.cancelled_at),
        "cancel_reason": b.cancel_reason,
        "checked_in_at": _iso(b.checked_in_at),
    }


def serialize_slot(s):
    return {
        "time": format_time(s.time),
        "available": s.available,
        "is_booked": s.is_booked,
        "is_past": s.is_past,
    }
