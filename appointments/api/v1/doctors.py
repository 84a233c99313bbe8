from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from appointments.api.pagination import LimitParam, OffsetParam
from appointments.db.session import get_db
from appointments.schemas.doctor import DoctorCreateRequest, DoctorResponse
from appointments.schemas.slot import SlotGenerateRequest, SlotResponse
from appointments.services.doctor_service import create_doctor, get_doctor, list_doctors, list_specializations
from appointments.services.slot_registry import add_slots, list_available

router = APIRouter(prefix="/doctors", tags=["doctors"])


@router.get("", response_model=list[DoctorResponse], status_code=status.HTTP_200_OK)
def list_all_doctors(
    specialization: str | None = Query(default=None),
    search: str | None = Query(default=None, max_length=120),
    limit: LimitParam = 20,
    offset: OffsetParam = 0,
    db: Session = Depends(get_db),
) -> list[DoctorResponse]:
    doctors = list_doctors(db=db, specialization=specialization, search=search, limit=limit, offset=offset)
    return [DoctorResponse.model_validate(doctor) for doctor in doctors]


@router.get("/specializations", response_model=list[str], status_code=status.HTTP_200_OK)
def list_doctor_specializations(db: Session = Depends(get_db)) -> list[str]:
    return list_specializations(db=db)


@router.post("", response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
def add_doctor(payload: DoctorCreateRequest, db: Session = Depends(get_db)) -> DoctorResponse:
    doctor = create_doctor(db=db, payload=payload)
    return DoctorResponse.model_validate(doctor)


@router.get("/{doctor_id}", response_model=DoctorResponse, status_code=status.HTTP_200_OK)
def get_doctor_by_id(doctor_id: int, db: Session = Depends(get_db)) -> DoctorResponse:
    return DoctorResponse.model_validate(get_doctor(db=db, doctor_id=doctor_id))


@router.get("/{doctor_id}/slots", response_model=list[SlotResponse], status_code=status.HTTP_200_OK)
def list_available_slots(
    doctor_id: int,
    date_from: date | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[SlotResponse]:
    get_doctor(db=db, doctor_id=doctor_id)
    slots = list_available(db=db, doctor_id=doctor_id, from_date=date_from)
    return [SlotResponse.model_validate(slot) for slot in slots]


@router.post("/{doctor_id}/slots", response_model=list[SlotResponse], status_code=status.HTTP_201_CREATED)
def generate_doctor_slots(
    doctor_id: int,
    payload: SlotGenerateRequest,
    db: Session = Depends(get_db),
) -> list[SlotResponse]:
    slots = add_slots(
        db=db,
        doctor_id=doctor_id,
        slot_date=payload.date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        duration_minutes=payload.duration_minutes,
    )
    return [SlotResponse.model_validate(slot) for slot in slots]
