from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from telecare.api.deps import Principal, get_current_doctor, get_session
from telecare.models.doctor import Doctor, DoctorPublic, WorkingHoursUpdate
from telecare.services.doctor_service import get_doctor, update_working_hours

router = APIRouter(prefix="/doctors", tags=["doctors"])


def _to_public(d: Doctor) -> DoctorPublic:
    return DoctorPublic(
        uid=d.uid,
        first_name=d.first_name,
        last_name=d.last_name,
        specialty=d.specialty,
        workplace=d.workplace,
        working_hours=d.work_days(),
    )


@router.get("/{doctor_id}", response_model=DoctorPublic)
async def read_doctor(
    doctor_id: str,
    session: AsyncSession = Depends(get_session),
) -> DoctorPublic:
    return _to_public(await get_doctor(session, doctor_id))


@router.put("/{doctor_id}/working-hours", response_model=DoctorPublic)
async def replace_working_hours(
    doctor_id: str,
    body: WorkingHoursUpdate,
    session: AsyncSession = Depends(get_session),
    current_doctor: Principal = Depends(get_current_doctor),
) -> DoctorPublic:
    if current_doctor.uid != doctor_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only edit your own schedule",
        )
    doctor = await update_working_hours(session, doctor_id, body)
    return _to_public(doctor)
