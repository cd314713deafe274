"""Shared test fixtures and helpers."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENV", "test")

from datetime import datetime
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from telecare.models.appointment import Appointment, AppointmentStatus
from telecare.models.conversation import Conversation
from telecare.models.doctor import Doctor

# Monday 2024-06-03, Tuesday 2024-06-04
MONDAY = "2024-06-03"
TUESDAY = "2024-06-04"

MONDAY_MORNING = [{"day_of_week": 1, "slots": [{"start": "09:00", "end": "10:00"}]}]


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'telecare.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


def make_doctor(
    uid: str = "doc-1",
    working_hours: Optional[list[dict]] = None,
    first_name: str = "Ana",
    last_name: str = "Quispe",
) -> Doctor:
    return Doctor(
        uid=uid,
        first_name=first_name,
        last_name=last_name,
        specialty="Cardiology",
        working_hours=MONDAY_MORNING if working_hours is None else working_hours,
    )


def make_appointment(
    appointment_id: str,
    when: datetime,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    doctor_id: str = "doc-1",
    user_id: str = "other-patient",
) -> Appointment:
    return Appointment(
        id=appointment_id,
        user_id=user_id,
        user_name="Someone Else",
        doctor_id=doctor_id,
        doctor_name="Dr. Ana Quispe",
        appointment_date=when,
        status=status.value,
    )


async def seed(session_maker, *rows) -> None:
    """Insert rows in their own committed transaction."""
    async with session_maker() as s:
        for row in rows:
            s.add(row)
        await s.commit()


@pytest_asyncio.fixture
async def clinic(session_maker):
    """One doctor working Monday 09:00-10:00 and an open conversation for patient-1."""
    await seed(
        session_maker,
        make_doctor(),
        Conversation(id="conv-1", user_id="patient-1", name="Chest pain"),
    )
    return session_maker
