from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from telecare.api.deps import (
    Principal,
    get_current_doctor,
    get_current_patient,
    get_current_principal,
    get_session,
)
from telecare.api.schemas.appointment import (
    BookAppointmentRequest,
    LiveAppointmentResponse,
    StatusUpdateRequest,
)
from telecare.models.appointment import Appointment, AppointmentDraft, AppointmentPublic, AppointmentStatus
from telecare.services.appointment_service import (
    AppointmentFilter,
    create_appointment,
    day_start,
    has_live_appointment,
    list_appointments,
    parse_civil_datetime,
    set_appointment_status,
)

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _to_public(a: Appointment) -> AppointmentPublic:
    """Build public response; datetimes are naive UTC for JSON."""
    appointment_date = a.appointment_date
    created = a.created_at
    if isinstance(appointment_date, datetime) and appointment_date.tzinfo is not None:
        appointment_date = appointment_date.replace(tzinfo=None)
    if isinstance(created, datetime) and created.tzinfo is not None:
        created = created.replace(tzinfo=None)
    return AppointmentPublic(
        id=a.id,
        user_id=a.user_id,
        user_name=a.user_name,
        doctor_id=a.doctor_id,
        doctor_name=a.doctor_name,
        appointment_date=appointment_date,
        status=AppointmentStatus(a.status),
        created_at=created,
        is_rated=a.is_rated,
    )


@router.get("/live", response_model=LiveAppointmentResponse)
async def live_appointment_check(
    doctor_id: str = Query(...),
    session: AsyncSession = Depends(get_session),
    current_patient: Principal = Depends(get_current_patient),
) -> LiveAppointmentResponse:
    """Whether the caller already has a pending/confirmed appointment with this doctor."""
    live = await has_live_appointment(session, current_patient.uid, doctor_id)
    return LiveAppointmentResponse(doctor_id=doctor_id, has_live_appointment=live)


@router.post("", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: BookAppointmentRequest,
    session: AsyncSession = Depends(get_session),
    current_patient: Principal = Depends(get_current_patient),
) -> AppointmentPublic:
    draft = AppointmentDraft(
        user_id=current_patient.uid,
        user_name=body.user_name,
        doctor_id=body.doctor_id,
        doctor_name=body.doctor_name,
        appointment_date=parse_civil_datetime(body.appointment_date),
    )
    appointment = await create_appointment(session, draft, body.conversation_id)
    return _to_public(appointment)


@router.get("", response_model=list[AppointmentPublic])
async def list_my_appointments(
    status_param: AppointmentStatus | None = Query(None, alias="status"),
    from_date: date | None = Query(None, alias="from_date"),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_current_principal),
) -> list[AppointmentPublic]:
    """Patients get their bookings, doctors their agenda."""
    f = AppointmentFilter(
        statuses=(status_param.value,) if status_param else None,
        date_from=day_start(from_date) if from_date else None,
    )
    if principal.is_doctor:
        f.doctor_id = principal.uid
    else:
        f.user_id = principal.uid
    appointments = await list_appointments(session, f)
    return [_to_public(a) for a in appointments]


@router.patch("/{appointment_id}/status", response_model=AppointmentPublic)
async def change_status(
    appointment_id: str,
    body: StatusUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_doctor: Principal = Depends(get_current_doctor),
) -> AppointmentPublic:
    appointment = await set_appointment_status(
        session, appointment_id, body.status, doctor_id=current_doctor.uid
    )
    return _to_public(appointment)
