from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from appointments.api.pagination import LimitParam, OffsetParam
from appointments.db.models import BookingStatus
from appointments.db.session import get_db
from appointments.schemas.booking import BookingCreateRequest, BookingResponse
from appointments.services.booking_service import (
    book_slot,
    cancel_booking,
    confirm_booking,
    get_booking,
    list_bookings,
)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(payload: BookingCreateRequest, db: Session = Depends(get_db)) -> BookingResponse:
    booking = book_slot(
        db=db,
        doctor_id=payload.doctor_id,
        slot_id=payload.slot_id,
        patient_name=payload.patient_name,
        patient_email=str(payload.patient_email),
        patient_phone=payload.patient_phone,
        notes=payload.notes,
    )
    return BookingResponse.model_validate(booking)


@router.get("", response_model=list[BookingResponse], status_code=status.HTTP_200_OK)
def list_all_bookings(
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    doctor_id: int | None = Query(default=None),
    limit: LimitParam = 20,
    offset: OffsetParam = 0,
    db: Session = Depends(get_db),
) -> list[BookingResponse]:
    bookings = list_bookings(db=db, status=status_filter, doctor_id=doctor_id, limit=limit, offset=offset)
    return [BookingResponse.model_validate(booking) for booking in bookings]


@router.get("/{booking_id}", response_model=BookingResponse, status_code=status.HTTP_200_OK)
def get_booking_by_id(booking_id: int, db: Session = Depends(get_db)) -> BookingResponse:
    return BookingResponse.model_validate(get_booking(db=db, booking_id=booking_id))


@router.patch("/{booking_id}/confirm", response_model=BookingResponse, status_code=status.HTTP_200_OK)
def confirm_existing_booking(booking_id: int, db: Session = Depends(get_db)) -> BookingResponse:
    return BookingResponse.model_validate(confirm_booking(db=db, booking_id=booking_id))


@router.patch("/{booking_id}/cancel", response_model=BookingResponse, status_code=status.HTTP_200_OK)
def cancel_existing_booking(booking_id: int, db: Session = Depends(get_db)) -> BookingResponse:
    return BookingResponse.model_validate(cancel_booking(db=db, booking_id=booking_id))
