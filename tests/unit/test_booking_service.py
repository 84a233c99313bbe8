from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from appointments.core.exceptions import InvalidTransition, NotFound, SlotUnavailable, StoreUnavailable, ValidationError
from appointments.db.models import Booking, BookingStatus, TimeSlot
from appointments.services.booking_service import (
    book_slot,
    cancel_booking,
    confirm_booking,
    get_booking,
    list_bookings,
)
from appointments.services.slot_registry import list_available


def _book(db, slot, **overrides):
    fields = {
        "doctor_id": slot.doctor_id,
        "slot_id": slot.id,
        "patient_name": "A",
        "patient_email": "a@x.com",
        "patient_phone": "555",
        "notes": "",
    }
    fields.update(overrides)
    return book_slot(db, **fields)


def _assert_slot_matches_bookings(db, slot_id: int) -> None:
    db.expire_all()
    active = (
        db.query(Booking)
        .filter(
            Booking.slot_id == slot_id,
            Booking.status.in_([BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value]),
        )
        .count()
    )
    assert active <= 1
    assert db.get(TimeSlot, slot_id).is_booked is (active == 1)


def test_book_confirm_cancel_scenario(db, slot):
    booking = _book(db, slot)
    assert booking.status == BookingStatus.PENDING.value
    assert booking.notes is None
    _assert_slot_matches_bookings(db, slot.id)

    with pytest.raises(SlotUnavailable):
        _book(db, slot, patient_name="B", patient_email="b@x.com")
    assert db.query(Booking).count() == 1

    confirmed = confirm_booking(db, booking.id)
    assert confirmed.status == BookingStatus.CONFIRMED.value
    _assert_slot_matches_bookings(db, slot.id)

    cancelled = cancel_booking(db, booking.id)
    assert cancelled.status == BookingStatus.CANCELLED.value
    _assert_slot_matches_bookings(db, slot.id)
    assert db.get(TimeSlot, slot.id).is_booked is False


def test_slot_can_be_booked_again_after_cancel(db, slot):
    first = _book(db, slot)
    cancel_booking(db, first.id)

    second = _book(db, slot, patient_name="B")

    assert second.id != first.id
    assert second.status == BookingStatus.PENDING.value
    _assert_slot_matches_bookings(db, slot.id)


@pytest.mark.parametrize("field", ["patient_name", "patient_email", "patient_phone"])
def test_book_rejects_blank_patient_fields_without_claiming(db, slot, field):
    with pytest.raises(ValidationError) as exc_info:
        _book(db, slot, **{field: "   "})

    assert exc_info.value.detail == {"missing_fields": [field]}
    assert db.query(Booking).count() == 0
    assert db.get(TimeSlot, slot.id).is_booked is False


def test_book_rejects_slot_of_another_doctor(db, slot, make_doctor):
    other = make_doctor(name="Dr. Other", specialization="Neurologist")

    with pytest.raises(SlotUnavailable):
        _book(db, slot, doctor_id=other.id)

    assert db.query(Booking).count() == 0
    assert db.get(TimeSlot, slot.id).is_booked is False


def test_book_unknown_slot_is_unavailable(db, doctor):
    with pytest.raises(SlotUnavailable):
        book_slot(db, doctor.id, 12345, "A", "a@x.com", "555")


def test_confirm_and_cancel_unknown_booking(db):
    with pytest.raises(NotFound):
        confirm_booking(db, 404)
    with pytest.raises(NotFound):
        cancel_booking(db, 404)
    with pytest.raises(NotFound):
        get_booking(db, 404)


def test_double_confirm_and_double_cancel_are_reported(db, slot):
    booking = _book(db, slot)
    confirm_booking(db, booking.id)

    with pytest.raises(InvalidTransition):
        confirm_booking(db, booking.id)

    cancel_booking(db, booking.id)
    with pytest.raises(InvalidTransition):
        cancel_booking(db, booking.id)

    assert get_booking(db, booking.id).status == BookingStatus.CANCELLED.value
    _assert_slot_matches_bookings(db, slot.id)


def test_booked_slot_disappears_from_available_list(db, doctor, make_slot):
    booked = make_slot(doctor)
    free = make_slot(doctor, start=booked.end_time)
    _book(db, booked)

    slots = list_available(db, doctor_id=doctor.id)

    assert [slot.id for slot in slots] == [free.id]


def test_list_bookings_filters_by_status(db, doctor, make_slot):
    first = _book(db, make_slot(doctor))
    second = _book(db, make_slot(doctor, start=first.slot.end_time))
    confirm_booking(db, second.id)

    pending = list_bookings(db, status=BookingStatus.PENDING)
    everything = list_bookings(db, doctor_id=doctor.id)

    assert [booking.id for booking in pending] == [first.id]
    assert {booking.id for booking in everything} == {first.id, second.id}


def test_book_uses_supplied_clock_for_expiry(db, slot):
    now = datetime(2026, 10, 19, 9, 0, tzinfo=UTC)

    booking = _book(db, slot, now=now)

    assert booking.expires_at.replace(tzinfo=UTC) == now + timedelta(minutes=10)


def test_unreachable_store_fails_closed(tmp_path):
    missing_dir = tmp_path / "missing" / "store.db"
    engine = create_engine(f"sqlite+pysqlite:///{missing_dir}")
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        with pytest.raises(StoreUnavailable):
            book_slot(session, 1, 1, "A", "a@x.com", "555")
        with pytest.raises(StoreUnavailable):
            list_available(session, doctor_id=1)
        with pytest.raises(StoreUnavailable):
            confirm_booking(session, 1)
    finally:
        session.close()
        engine.dispose()
