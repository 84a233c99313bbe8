import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from appointments.core.exceptions import BookingError, InvalidTransition
from appointments.core.logging import setup_logging
from appointments.core.metrics import BOOKINGS_EXPIRED
from appointments.db.models import Booking, BookingStatus
from appointments.db.session import SessionLocal
from appointments.services.booking_service import expire_booking
from appointments.tasks.celery_app import celery_app

logger = logging.getLogger("appointments.sweeper")


def find_stale_pending_bookings(db: Session, now: datetime) -> list[int]:
    booking_ids = db.scalars(
        select(Booking.id)
        .where(
            Booking.status == BookingStatus.PENDING.value,
            Booking.expires_at <= now,
        )
        .order_by(Booking.expires_at, Booking.id)
    ).all()
    # end the read transaction so each expiry below starts its own
    db.rollback()
    return list(booking_ids)


def expire_pending_bookings(db: Session, now: datetime | None = None) -> int:
    """Move every past-due PENDING booking to FAILED and free its slot.

    Each booking is expired in its own transaction; a failure is logged and
    the sweep carries on with the rest. Bookings confirmed or cancelled since
    the selection are skipped, so re-running a sweep is always safe.
    """
    current_time = now or datetime.now(UTC)
    expired = 0
    for booking_id in find_stale_pending_bookings(db, now=current_time):
        try:
            expire_booking(db, booking_id, now=current_time)
        except InvalidTransition:
            logger.info("expiry_skipped booking_id=%s reason=status_changed", booking_id)
            continue
        except (BookingError, SQLAlchemyError):
            db.rollback()
            logger.exception("expiry_failed booking_id=%s", booking_id)
            continue
        expired += 1

    if expired:
        BOOKINGS_EXPIRED.inc(expired)
    logger.info("expiry_sweep_finished expired=%s", expired)
    return expired


@celery_app.task(name="bookings.expire_pending")
def expire_pending_bookings_task() -> dict[str, int]:
    setup_logging()
    db = SessionLocal()
    try:
        expired_count = expire_pending_bookings(db=db)
        return {"expired": expired_count}
    finally:
        db.close()
