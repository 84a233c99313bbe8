import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from appointments.core.exceptions import NotFound, StoreUnavailable
from appointments.db.models import Doctor
from appointments.db.session import is_store_unavailable, store_errors
from appointments.schemas.doctor import DoctorCreateRequest

logger = logging.getLogger("appointments.doctors")


def create_doctor(db: Session, payload: DoctorCreateRequest) -> Doctor:
    doctor = Doctor(**payload.model_dump())
    db.add(doctor)
    try:
        db.commit()
    except DBAPIError as exc:
        db.rollback()
        if is_store_unavailable(exc):
            raise StoreUnavailable() from exc
        raise
    db.refresh(doctor)
    logger.info("doctor_created doctor_id=%s specialization=%s", doctor.id, doctor.specialization)
    return doctor


def get_doctor(db: Session, doctor_id: int) -> Doctor:
    with store_errors():
        doctor = db.get(Doctor, doctor_id)
    if doctor is None:
        raise NotFound("Doctor not found", detail={"doctor_id": doctor_id})
    return doctor


def list_doctors(
    db: Session,
    specialization: str | None = None,
    search: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Doctor]:
    query = select(Doctor)
    if specialization:
        query = query.where(Doctor.specialization == specialization)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.where(
            or_(
                func.lower(Doctor.name).like(pattern),
                func.lower(Doctor.specialization).like(pattern),
            )
        )

    with store_errors():
        doctors = db.scalars(
            query.order_by(Doctor.created_at.desc(), Doctor.id.desc()).limit(limit).offset(offset)
        ).all()
    return list(doctors)


def list_specializations(db: Session) -> list[str]:
    with store_errors():
        rows = db.scalars(select(Doctor.specialization).distinct().order_by(Doctor.specialization)).all()
    return list(rows)
