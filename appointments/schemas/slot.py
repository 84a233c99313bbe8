from datetime import date, time

from pydantic import BaseModel, Field, model_validator


class SlotGenerateRequest(BaseModel):
    date: date
    start_time: time
    end_time: time
    duration_minutes: int = Field(default=30, ge=5, le=480)

    @model_validator(mode="after")
    def validate_window(self) -> "SlotGenerateRequest":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be greater than start_time")
        return self


class SlotResponse(BaseModel):
    id: int
    doctor_id: int
    date: date
    start_time: time
    end_time: time
    is_booked: bool

    model_config = {"from_attributes": True}
