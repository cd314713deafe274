from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from telecare.api.deps import get_session
from telecare.api.schemas.appointment import AvailableSlotsResponse
from telecare.services.slot_service import get_available_slots, parse_civil_date

router = APIRouter(prefix="/doctors", tags=["slots"])


@router.get("/{doctor_id}/slots", response_model=AvailableSlotsResponse)
async def available_slots(
    doctor_id: str,
    date_param: str = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
) -> AvailableSlotsResponse:
    """Free HH:MM start times for the doctor on the given date (YYYY-MM-DD)."""
    slots = await get_available_slots(session, doctor_id, date_param)
    return AvailableSlotsResponse(
        doctor_id=doctor_id,
        date=parse_civil_date(date_param).isoformat(),
        slots=slots,
    )
