from datetime import UTC, datetime
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    COMPLETED = "completed"


# Statuses that hold a slot
LIVE_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)

_LIVE_PREDICATE = sa.text("status IN ('pending', 'confirmed')")


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # One live booking per doctor and start minute
        sa.Index(
            "uq_appointments_doctor_live_slot",
            "doctor_id",
            "appointment_date",
            unique=True,
            postgresql_where=_LIVE_PREDICATE,
            sqlite_where=_LIVE_PREDICATE,
        ),
        # One live booking per patient and doctor
        sa.Index(
            "uq_appointments_patient_live_doctor",
            "user_id",
            "doctor_id",
            unique=True,
            postgresql_where=_LIVE_PREDICATE,
            sqlite_where=_LIVE_PREDICATE,
        ),
    )
    id: str = Field(primary_key=True)
    user_id: str = Field(index=True)
    user_name: str
    doctor_id: str = Field(foreign_key="doctors.uid", index=True)
    doctor_name: str
    appointment_date: datetime = Field(index=True, sa_type=sa.DateTime())  # naive UTC, minute precision
    status: str = Field(default=AppointmentStatus.PENDING.value, index=True)
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=sa.DateTime())
    is_rated: bool | None = None


class AppointmentDraft(SQLModel):
    user_id: str
    user_name: str
    doctor_id: str
    doctor_name: str | None = None
    appointment_date: datetime


class AppointmentPublic(SQLModel):
    id: str
    user_id: str
    user_name: str
    doctor_id: str
    doctor_name: str
    appointment_date: datetime
    status: AppointmentStatus
    created_at: datetime
    is_rated: bool | None = None
