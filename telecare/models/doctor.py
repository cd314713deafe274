import re
from datetime import UTC, datetime
from typing import Any

from pydantic import field_validator, model_validator
from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def hhmm_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_hhmm(value: int) -> str:
    return f"{value // 60:02d}:{value % 60:02d}"


class TimeRange(SQLModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_hhmm(cls, v: str) -> str:
        if not _HHMM.match(v):
            raise ValueError(f"expected HH:MM, got {v!r}")
        return v


class WorkDay(SQLModel):
    day_of_week: int = Field(ge=0, le=6)  # 0 = Sunday
    slots: list[TimeRange] = []


class Doctor(SQLModel, table=True):
    __tablename__ = "doctors"
    uid: str = Field(primary_key=True)
    first_name: str
    last_name: str
    specialty: str | None = Field(default=None, index=True)
    email: str | None = None
    workplace: str | None = None
    # Stored as [{"day_of_week": 1, "slots": [{"start": "09:00", "end": "17:00"}]}]
    working_hours: list[dict[str, Any]] | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())

    @property
    def display_name(self) -> str:
        return f"Dr. {self.first_name} {self.last_name}"

    def work_days(self) -> list[WorkDay]:
        return [WorkDay.model_validate(d) for d in self.working_hours or []]


class WorkingHoursUpdate(SQLModel):
    """Replacement weekly template submitted from the schedule form."""

    working_hours: list[WorkDay]

    @model_validator(mode="after")
    def _check_template(self) -> "WorkingHoursUpdate":
        seen: set[int] = set()
        for day in self.working_hours:
            if day.day_of_week in seen:
                raise ValueError(f"day_of_week {day.day_of_week} declared more than once")
            seen.add(day.day_of_week)
            for r in day.slots:
                if hhmm_to_minutes(r.start) >= hhmm_to_minutes(r.end):
                    raise ValueError(f"range {r.start}-{r.end} must start before it ends")
        return self


class DoctorPublic(SQLModel):
    uid: str
    first_name: str
    last_name: str
    specialty: str | None = None
    workplace: str | None = None
    working_hours: list[WorkDay] = []
