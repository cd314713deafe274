import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from telecare.models.doctor import Doctor, WorkingHoursUpdate
from telecare.services.errors import NotFoundError

logger = logging.getLogger(__name__)


async def get_doctor(session: AsyncSession, doctor_id: str) -> Doctor:
    doctor = await session.get(Doctor, doctor_id)
    if doctor is None:
        raise NotFoundError(f"Doctor '{doctor_id}' not found")
    return doctor


async def update_working_hours(
    session: AsyncSession, doctor_id: str, data: WorkingHoursUpdate
) -> Doctor:
    """Replace the doctor's weekly template. Existing bookings are left untouched."""
    doctor = await get_doctor(session, doctor_id)
    doctor.working_hours = [d.model_dump() for d in data.working_hours]
    doctor.updated_at = datetime.now(UTC).replace(tzinfo=None)
    session.add(doctor)
    await session.flush()
    logger.info("Working hours updated for doctor %s (%d day(s))", doctor_id, len(data.working_hours))
    return doctor
