from flask import current_app
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from models import db
from models.reference_counter import ReferenceCounter
from services.errors import ExhaustedSequence
from utils.timegrid import resolve_now

MAX_SEQUENCE = 999


def _bump(minute_key: str):
    stmt = (
        update(ReferenceCounter)
        .where(ReferenceCounter.minute_key == minute_key)
        .values(last_value=ReferenceCounter.last_value + 1)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount


def next_sequence(minute_key: str) -> int:
    """Atomically take the next value of the counter for ``minute_key``."""
    if not _bump(minute_key):
        try:
            with db.session.begin_nested():
                db.session.add(ReferenceCounter(minute_key=minute_key, last_value=1))
            return 1
        except IntegrityError:
            # another request created the row first
            _bump(minute_key)
    return db.session.execute(
        select(ReferenceCounter.last_value).where(ReferenceCounter.minute_key == minute_key)
    ).scalar_one()


def next_booking_reference(now=None) -> str:
    """``<prefix><YYYYMMDD><HHmm><n>`` stamped with the generation time.

    ``n`` starts at 1 every minute; once it would pass 999 the minute is
    exhausted and the caller has to try again later.
    """
    now = resolve_now(now)
    minute_key = now.strftime("%Y%m%d%H%M")
    n = next_sequence(minute_key)
    if n > MAX_SEQUENCE:
        raise ExhaustedSequence(
            "Could not generate a booking reference, please retry",
            minute=minute_key,
        )
    prefix = current_app.config.get("BOOKING_REFERENCE_PREFIX", "SM")
    return f"{prefix}{minute_key}{n}"
