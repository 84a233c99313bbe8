import logging
from datetime import UTC, date, datetime, time, timedelta

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session

from appointments.core.exceptions import NotFound, SlotOverlap, SlotUnavailable, StoreUnavailable, ValidationError
from appointments.db.models import Doctor, TimeSlot
from appointments.db.session import is_store_unavailable, store_errors

logger = logging.getLogger("appointments.slots")


def list_available(db: Session, doctor_id: int, from_date: date | None = None) -> list[TimeSlot]:
    """Free slots of a doctor from ``from_date`` on, earliest first.

    A plain read: the result may already be stale by the time a client books
    from it, which is fine because :func:`claim_slot` re-checks atomically.
    """
    start_date = from_date or datetime.now(UTC).date()
    with store_errors():
        slots = db.scalars(
            select(TimeSlot)
            .where(
                TimeSlot.doctor_id == doctor_id,
                TimeSlot.is_booked.is_(False),
                TimeSlot.date >= start_date,
            )
            .order_by(TimeSlot.date, TimeSlot.start_time, TimeSlot.id)
        ).all()
    return list(slots)


def claim_slot(db: Session, slot_id: int, doctor_id: int) -> None:
    """Flip a free slot to booked inside the caller's transaction.

    The check and the write are one conditional UPDATE, so two transactions
    can never both observe ``is_booked = false`` and both succeed.
    """
    claimed = db.execute(
        update(TimeSlot)
        .where(
            TimeSlot.id == slot_id,
            TimeSlot.doctor_id == doctor_id,
            TimeSlot.is_booked.is_(False),
        )
        .values(is_booked=True)
    )
    if claimed.rowcount != 1:
        raise SlotUnavailable(detail={"slot_id": slot_id, "doctor_id": doctor_id})


def release_slot(db: Session, slot_id: int) -> None:
    # releasing a free slot is a no-op
    db.execute(
        update(TimeSlot)
        .where(TimeSlot.id == slot_id, TimeSlot.is_booked.is_(True))
        .values(is_booked=False)
    )


def generate_time_slots(start_time: time, end_time: time, duration_minutes: int) -> list[tuple[time, time]]:
    """Split ``[start_time, end_time)`` into consecutive slots of equal length.

    A trailing interval shorter than ``duration_minutes`` is dropped.
    """
    if duration_minutes <= 0:
        raise ValidationError("duration_minutes must be positive")

    anchor = date.min
    current = datetime.combine(anchor, start_time)
    window_end = datetime.combine(anchor, end_time)
    step = timedelta(minutes=duration_minutes)

    slots: list[tuple[time, time]] = []
    while current + step <= window_end:
        slots.append((current.time(), (current + step).time()))
        current += step
    return slots


def add_slots(
    db: Session,
    doctor_id: int,
    slot_date: date,
    start_time: time,
    end_time: time,
    duration_minutes: int,
) -> list[TimeSlot]:
    intervals = generate_time_slots(start_time, end_time, duration_minutes)
    if not intervals:
        raise ValidationError("Time window is shorter than one slot")

    try:
        doctor = db.get(Doctor, doctor_id)
        if doctor is None:
            raise NotFound("Doctor not found")

        existing = db.scalars(
            select(TimeSlot).where(TimeSlot.doctor_id == doctor_id, TimeSlot.date == slot_date)
        ).all()
        for slot_start, slot_end in intervals:
            for other in existing:
                if other.start_time < slot_end and other.end_time > slot_start:
                    raise SlotOverlap(
                        detail={
                            "date": slot_date.isoformat(),
                            "start_time": slot_start.isoformat(timespec="minutes"),
                            "existing_slot_id": other.id,
                        }
                    )

        slots = [
            TimeSlot(
                doctor_id=doctor_id,
                date=slot_date,
                start_time=slot_start,
                end_time=slot_end,
                is_booked=False,
            )
            for slot_start, slot_end in intervals
        ]
        db.add_all(slots)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise SlotOverlap() from None
    except DBAPIError as exc:
        db.rollback()
        if is_store_unavailable(exc):
            raise StoreUnavailable() from exc
        raise
    except Exception:
        db.rollback()
        raise

    for slot in slots:
        db.refresh(slot)
    logger.info(
        "slots_added doctor_id=%s date=%s count=%s",
        doctor_id,
        slot_date.isoformat(),
        len(slots),
    )
    return slots
