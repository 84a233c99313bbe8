import sys
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.append(str(Path(__file__).resolve().parents[1]))

from appointments.db.base import Base
from appointments.db.models import Booking, Doctor, TimeSlot  # noqa: F401
from appointments.db.session import get_db
from appointments.main import app

TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def reset_database() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture()
def db() -> Session:
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client() -> TestClient:
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _build_doctor(name: str, specialization: str) -> Doctor:
    return Doctor(
        name=name,
        specialization=specialization,
        experience=15,
        rating=Decimal("4.9"),
        bio="Preventive cardiology and heart failure management.",
        consultation_fee=Decimal("150.00"),
        languages=["English", "Spanish"],
        education="MD",
        hospital="City Heart Hospital",
    )


@pytest.fixture()
def make_doctor(db: Session):
    def factory(name: str = "Dr. Sarah Mitchell", specialization: str = "Cardiologist") -> Doctor:
        doctor = _build_doctor(name=name, specialization=specialization)
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor

    return factory


@pytest.fixture()
def doctor(make_doctor) -> Doctor:
    return make_doctor()


@pytest.fixture()
def make_slot(db: Session):
    def factory(
        doctor: Doctor,
        slot_date: date | None = None,
        start: time = time(9, 0),
        minutes: int = 30,
        is_booked: bool = False,
    ) -> TimeSlot:
        slot_date = slot_date or date.today() + timedelta(days=1)
        end = datetime.combine(slot_date, start) + timedelta(minutes=minutes)
        slot = TimeSlot(
            doctor_id=doctor.id,
            date=slot_date,
            start_time=start,
            end_time=end.time(),
            is_booked=is_booked,
        )
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    return factory


@pytest.fixture()
def slot(doctor, make_slot) -> TimeSlot:
    return make_slot(doctor)
