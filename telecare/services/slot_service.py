from collections.abc import Iterable
from datetime import date, datetime, time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from telecare.core.config import settings
from telecare.models.appointment import LIVE_STATUSES, Appointment
from telecare.models.doctor import WorkDay, hhmm_to_minutes, minutes_to_hhmm
from telecare.services.doctor_service import get_doctor
from telecare.services.errors import ValidationFailure


def parse_civil_date(value: str | date) -> date:
    """Parse a YYYY-MM-DD date string. The result carries no timezone."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationFailure(f"Invalid date '{value}', expected YYYY-MM-DD") from None


def weekday_index(d: date) -> int:
    """Day of week with 0 = Sunday, the convention WorkDay.day_of_week uses."""
    return d.isoweekday() % 7


def day_bounds(d: date) -> tuple[datetime, datetime]:
    """Closed interval covering the whole civil day."""
    return datetime.combine(d, time.min), datetime.combine(d, time.max)


def find_work_day(work_days: Iterable[WorkDay], d: date) -> WorkDay | None:
    dow = weekday_index(d)
    for wd in work_days:
        if wd.day_of_week == dow:
            return wd
    return None


def generate_slots(
    work_days: Iterable[WorkDay],
    d: date,
    booked: set[str] | frozenset[str] = frozenset(),
    *,
    slot_minutes: int | None = None,
    sort_chronologically: bool | None = None,
) -> list[str]:
    """Free HH:MM start times for the given date.

    Each range is walked from its own start in fixed steps while the step
    start is before the range end, so a final partial step is still offered.
    Ranges are concatenated in the order they were declared.
    """
    step = settings.slot_duration_minutes if slot_minutes is None else slot_minutes
    if step <= 0:
        raise ValueError(f"slot step must be positive, got {step}")
    if sort_chronologically is None:
        sort_chronologically = settings.sort_slots_chronologically
    work_day = find_work_day(work_days, d)
    if not work_day or not work_day.slots:
        return []
    out: list[str] = []
    for r in work_day.slots:
        current = hhmm_to_minutes(r.start)
        end = hhmm_to_minutes(r.end)
        while current < end:
            hhmm = minutes_to_hhmm(current)
            if hhmm not in booked:
                out.append(hhmm)
            current += step
    if sort_chronologically:
        return sorted(set(out))
    return out


async def get_booked_times(session: AsyncSession, doctor_id: str, d: date) -> set[str]:
    """HH:MM of the doctor's pending/confirmed appointments on that day."""
    start, end = day_bounds(d)
    result = await session.execute(
        select(Appointment.appointment_date).where(
            Appointment.doctor_id == doctor_id,
            Appointment.status.in_(LIVE_STATUSES),
            Appointment.appointment_date >= start,
            Appointment.appointment_date <= end,
        )
    )
    return {row[0].strftime("%H:%M") for row in result.all()}


async def get_available_slots(
    session: AsyncSession, doctor_id: str, date_civil: str | date
) -> list[str]:
    d = parse_civil_date(date_civil)
    doctor = await get_doctor(session, doctor_id)
    work_days = doctor.work_days()
    if find_work_day(work_days, d) is None:
        return []
    booked = await get_booked_times(session, doctor_id, d)
    return generate_slots(work_days, d, booked)
