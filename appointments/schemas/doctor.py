from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator


class DoctorCreateRequest(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    specialization: str = Field(min_length=2, max_length=120)
    experience: int = Field(ge=0, le=80)
    consultation_fee: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    rating: Decimal = Field(default=Decimal("0"), ge=0, le=5, max_digits=3, decimal_places=2)
    image: str | None = Field(default=None, max_length=500)
    bio: str = Field(default="", max_length=5000)
    languages: list[str] = Field(default_factory=lambda: ["English"])
    education: str = Field(default="", max_length=255)
    hospital: str = Field(default="", max_length=255)

    @field_validator("languages")
    @classmethod
    def strip_languages(cls, value: list[str]) -> list[str]:
        return [language.strip() for language in value if language.strip()]


class DoctorResponse(BaseModel):
    id: int
    name: str
    specialization: str
    experience: int
    rating: Decimal
    image: str | None
    bio: str
    consultation_fee: Decimal
    languages: list[str]
    education: str
    hospital: str
    created_at: datetime

    model_config = {"from_attributes": True}
