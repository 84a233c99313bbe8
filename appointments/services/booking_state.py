"""Booking status lifecycle.

``PENDING`` holds a reservation on a slot and ``CONFIRMED`` finalises it;
``FAILED`` and ``CANCELLED`` are terminal and always release the slot. The
functions here are the only writers of ``Booking.status`` and they change the
slot flag inside the caller's transaction, never on their own.
"""

from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from appointments.core.config import settings
from appointments.core.exceptions import InvalidTransition
from appointments.db.models import Booking, BookingStatus
from appointments.services.slot_registry import release_slot

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.FAILED, BookingStatus.CANCELLED}
    ),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.FAILED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def open_pending_booking(
    doctor_id: int,
    slot_id: int,
    patient_name: str,
    patient_email: str,
    patient_phone: str,
    notes: str | None = None,
    now: datetime | None = None,
) -> Booking:
    current_time = as_utc(now or datetime.now(UTC))
    return Booking(
        doctor_id=doctor_id,
        slot_id=slot_id,
        patient_name=patient_name,
        patient_email=patient_email,
        patient_phone=patient_phone,
        notes=notes,
        status=BookingStatus.PENDING.value,
        created_at=current_time,
        updated_at=current_time,
        expires_at=current_time + timedelta(minutes=settings.booking_pending_expire_minutes),
    )


def _transition(booking: Booking, target: BookingStatus, now: datetime) -> BookingStatus:
    current = BookingStatus(booking.status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(
            f"Cannot move booking from {current.value} to {target.value}",
            detail={"booking_id": booking.id, "status": current.value, "requested": target.value},
        )

    booking.status = target.value
    booking.updated_at = now
    return current


def confirm(db: Session, booking: Booking, now: datetime | None = None) -> BookingStatus:
    previous = _transition(booking, BookingStatus.CONFIRMED, as_utc(now or datetime.now(UTC)))
    db.flush()
    return previous


def cancel(db: Session, booking: Booking, now: datetime | None = None) -> BookingStatus:
    current_time = as_utc(now or datetime.now(UTC))
    previous = _transition(booking, BookingStatus.CANCELLED, current_time)
    booking.cancelled_at = current_time
    db.flush()
    release_slot(db, booking.slot_id)
    return previous


def expire(db: Session, booking: Booking, now: datetime | None = None) -> BookingStatus:
    current_time = as_utc(now or datetime.now(UTC))
    if booking.status == BookingStatus.PENDING.value:
        if booking.expires_at is None or as_utc(booking.expires_at) > current_time:
            raise InvalidTransition(
                "Pending booking has not expired yet",
                detail={"booking_id": booking.id, "status": booking.status},
            )
    previous = _transition(booking, BookingStatus.FAILED, current_time)
    db.flush()
    release_slot(db, booking.slot_id)
    return previous
