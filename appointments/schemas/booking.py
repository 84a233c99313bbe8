from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from appointments.db.models.booking import BookingStatus


class BookingCreateRequest(BaseModel):
    doctor_id: int
    slot_id: int
    patient_name: str = Field(min_length=1, max_length=120)
    patient_email: EmailStr
    patient_phone: str = Field(min_length=1, max_length=40)
    notes: str | None = Field(default=None, max_length=2000)


class BookingResponse(BaseModel):
    id: int
    doctor_id: int
    slot_id: int
    patient_name: str
    patient_email: str
    patient_phone: str
    notes: str | None
    status: BookingStatus
    created_at: datetime
    expires_at: datetime | None
    updated_at: datetime
    cancelled_at: datetime | None

    model_config = {"from_attributes": True}
