import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from appointments.core.exceptions import (
    BookingError,
    NotFound,
    SlotUnavailable,
    StoreUnavailable,
    ValidationError,
)
from appointments.core.metrics import BOOKING_ATTEMPTS, BOOKING_TRANSITIONS
from appointments.db.models import Booking, BookingStatus
from appointments.db.session import apply_lock_timeout, is_pg_lock_not_available, is_store_unavailable, store_errors
from appointments.services import booking_state
from appointments.services.slot_registry import claim_slot

logger = logging.getLogger("appointments.bookings")

BOOKING_NOT_FOUND_DETAIL = "Booking not found"
BOOKING_LOCKED_DETAIL = "Booking is being updated by another request. Retry the request."

Transition = Callable[[Session, Booking, datetime | None], BookingStatus]


@contextmanager
def _booking_transaction(db: Session, conflict: Callable[[], BookingError]) -> Iterator[None]:
    """Run the body as one transaction: commit on success, roll back on any failure.

    Row-lock timeouts and unique-index violations are reported through
    ``conflict``; an unreachable store becomes ``StoreUnavailable``.
    """
    try:
        apply_lock_timeout(db)
        yield
        db.commit()
    except BookingError:
        db.rollback()
        raise
    except IntegrityError:
        db.rollback()
        raise conflict() from None
    except DBAPIError as exc:
        db.rollback()
        if is_pg_lock_not_available(exc):
            raise conflict() from None
        if is_store_unavailable(exc):
            raise StoreUnavailable() from exc
        raise


def _validate_patient_fields(**fields: str | None) -> dict[str, str]:
    cleaned: dict[str, str] = {}
    missing: list[str] = []
    for name, value in fields.items():
        value = (value or "").strip()
        if not value:
            missing.append(name)
        cleaned[name] = value
    if missing:
        raise ValidationError(
            "Required patient fields are missing",
            detail={"missing_fields": missing},
        )
    return cleaned


def book_slot(
    db: Session,
    doctor_id: int,
    slot_id: int,
    patient_name: str,
    patient_email: str,
    patient_phone: str,
    notes: str | None = None,
    now: datetime | None = None,
) -> Booking:
    """Claim a slot and open a PENDING booking for it in a single transaction.

    Raises ``ValidationError`` for blank patient fields, ``SlotUnavailable``
    when the slot is unknown, belongs to another doctor or is already taken,
    and ``StoreUnavailable`` when the database cannot be reached. No booking
    row survives any of these failures.
    """
    try:
        patient = _validate_patient_fields(
            patient_name=patient_name,
            patient_email=patient_email,
            patient_phone=patient_phone,
        )
    except ValidationError:
        BOOKING_ATTEMPTS.labels(outcome="invalid").inc()
        raise

    def slot_conflict() -> BookingError:
        return SlotUnavailable(detail={"slot_id": slot_id, "doctor_id": doctor_id})

    try:
        with _booking_transaction(db, conflict=slot_conflict):
            claim_slot(db, slot_id=slot_id, doctor_id=doctor_id)
            booking = booking_state.open_pending_booking(
                doctor_id=doctor_id,
                slot_id=slot_id,
                notes=(notes or "").strip() or None,
                now=now,
                **patient,
            )
            db.add(booking)
            db.flush()
    except SlotUnavailable:
        BOOKING_ATTEMPTS.labels(outcome="slot_unavailable").inc()
        logger.info("booking_rejected doctor_id=%s slot_id=%s reason=slot_unavailable", doctor_id, slot_id)
        raise
    except StoreUnavailable:
        BOOKING_ATTEMPTS.labels(outcome="store_unavailable").inc()
        logger.error("booking_failed doctor_id=%s slot_id=%s reason=store_unavailable", doctor_id, slot_id)
        raise

    db.refresh(booking)
    BOOKING_ATTEMPTS.labels(outcome="created").inc()
    logger.info(
        "booking_created booking_id=%s doctor_id=%s slot_id=%s expires_at=%s",
        booking.id,
        booking.doctor_id,
        booking.slot_id,
        booking.expires_at,
    )
    return booking


def _load_booking_for_update(db: Session, booking_id: int) -> Booking:
    booking = db.scalar(
        select(Booking)
        .where(Booking.id == booking_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if booking is None:
        raise NotFound(BOOKING_NOT_FOUND_DETAIL, detail={"booking_id": booking_id})
    return booking


def _apply_transition(db: Session, booking_id: int, transition: Transition, now: datetime | None) -> Booking:
    with _booking_transaction(db, conflict=lambda: StoreUnavailable(BOOKING_LOCKED_DETAIL)):
        booking = _load_booking_for_update(db, booking_id)
        previous = transition(db, booking, now)

    db.refresh(booking)
    BOOKING_TRANSITIONS.labels(from_status=previous.value, to_status=booking.status).inc()
    logger.info(
        "booking_transition booking_id=%s slot_id=%s from=%s to=%s",
        booking.id,
        booking.slot_id,
        previous.value,
        booking.status,
    )
    return booking


def confirm_booking(db: Session, booking_id: int, now: datetime | None = None) -> Booking:
    return _apply_transition(db, booking_id, booking_state.confirm, now)


def cancel_booking(db: Session, booking_id: int, now: datetime | None = None) -> Booking:
    return _apply_transition(db, booking_id, booking_state.cancel, now)


def expire_booking(db: Session, booking_id: int, now: datetime | None = None) -> Booking:
    return _apply_transition(db, booking_id, booking_state.expire, now)


def get_booking(db: Session, booking_id: int) -> Booking:
    with store_errors():
        booking = db.get(Booking, booking_id)
    if booking is None:
        raise NotFound(BOOKING_NOT_FOUND_DETAIL, detail={"booking_id": booking_id})
    return booking


def list_bookings(
    db: Session,
    status: BookingStatus | None = None,
    doctor_id: int | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Booking]:
    query = select(Booking)
    if status:
        query = query.where(Booking.status == status.value)
    if doctor_id is not None:
        query = query.where(Booking.doctor_id == doctor_id)

    with store_errors():
        bookings = db.scalars(
            query.order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit).offset(offset)
        ).all()
    return list(bookings)
