import os
from datetime import date, time, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from appointments.core.exceptions import SlotUnavailable, StoreUnavailable
from appointments.db.base import Base
from appointments.db.models import Booking, BookingStatus, Doctor, TimeSlot
from appointments.services.booking_service import BOOKING_LOCKED_DETAIL, book_slot, confirm_booking

TEST_POSTGRES_DATABASE_URL = os.getenv("TEST_POSTGRES_DATABASE_URL")


@pytest.fixture(scope="module")
def postgres_session_factory():
    if not TEST_POSTGRES_DATABASE_URL:
        pytest.skip("TEST_POSTGRES_DATABASE_URL is not set")

    engine = create_engine(TEST_POSTGRES_DATABASE_URL, pool_pre_ping=True)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    try:
        yield SessionLocal
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def _seed_slot(SessionLocal, start: time) -> tuple[int, int]:
    seed_session = SessionLocal()
    doctor = Doctor(
        name="Dr. Postgres",
        specialization="Neurologist",
        experience=14,
        consultation_fee=Decimal("200.00"),
        languages=["English"],
    )
    seed_session.add(doctor)
    seed_session.flush()
    slot = TimeSlot(
        doctor_id=doctor.id,
        date=date.today() + timedelta(days=1),
        start_time=start,
        end_time=time(start.hour, start.minute + 30),
        is_booked=False,
    )
    seed_session.add(slot)
    seed_session.commit()
    ids = doctor.id, slot.id
    seed_session.close()
    return ids


@pytest.mark.postgres
def test_postgres_slot_lock_timeout_then_success(postgres_session_factory, monkeypatch):
    monkeypatch.setattr("appointments.core.config.settings.db_lock_timeout_ms", 200)
    doctor_id, slot_id = _seed_slot(postgres_session_factory, time(9, 0))

    lock_holder = postgres_session_factory()
    try:
        locked_slot = lock_holder.scalar(select(TimeSlot).where(TimeSlot.id == slot_id).with_for_update())
        assert locked_slot is not None

        contender = postgres_session_factory()
        try:
            with pytest.raises(SlotUnavailable):
                book_slot(contender, doctor_id, slot_id, "A", "a@x.com", "555")
        finally:
            contender.close()
    finally:
        lock_holder.rollback()
        lock_holder.close()

    success_session = postgres_session_factory()
    booking = book_slot(success_session, doctor_id, slot_id, "A", "a@x.com", "555")
    success_session.close()

    assert booking.status == BookingStatus.PENDING.value

    check_session = postgres_session_factory()
    total_bookings = check_session.query(Booking).filter(Booking.slot_id == slot_id).count()
    final_slot = check_session.scalar(select(TimeSlot).where(TimeSlot.id == slot_id))
    check_session.close()

    assert total_bookings == 1
    assert final_slot is not None
    assert final_slot.is_booked is True


@pytest.mark.postgres
def test_postgres_locked_booking_row_reports_retry(postgres_session_factory, monkeypatch):
    monkeypatch.setattr("appointments.core.config.settings.db_lock_timeout_ms", 200)
    doctor_id, slot_id = _seed_slot(postgres_session_factory, time(10, 0))

    session = postgres_session_factory()
    booking = book_slot(session, doctor_id, slot_id, "A", "a@x.com", "555")
    booking_id = booking.id
    session.close()

    lock_holder = postgres_session_factory()
    try:
        lock_holder.scalar(select(Booking).where(Booking.id == booking_id).with_for_update())

        contender = postgres_session_factory()
        try:
            with pytest.raises(StoreUnavailable) as exc_info:
                confirm_booking(contender, booking_id)
            assert exc_info.value.message == BOOKING_LOCKED_DETAIL
        finally:
            contender.close()
    finally:
        lock_holder.rollback()
        lock_holder.close()
