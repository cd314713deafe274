import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from telecare.core.config import settings
from telecare.models.appointment import (
    LIVE_STATUSES,
    Appointment,
    AppointmentDraft,
    AppointmentStatus,
)
from telecare.models.conversation import CONVERSATION_CLOSED, Conversation
from telecare.services.appointment_lifecycle import check_transition
from telecare.services.doctor_service import get_doctor
from telecare.services.errors import (
    ConflictAlreadyBooked,
    NotFoundError,
    SchedulingError,
    SlotUnavailable,
    TransactionAborted,
    ValidationFailure,
)
from telecare.services.slot_service import generate_slots, get_booked_times

logger = logging.getLogger(__name__)


def _to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    if dt.tzinfo is not None:
        return dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def parse_civil_datetime(value: str | datetime) -> datetime:
    """Parse 'YYYY-MM-DDTHH:MM' (seconds allowed) into a naive UTC minute."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            raise ValidationFailure(
                f"Invalid appointment date '{value}', expected YYYY-MM-DDTHH:MM"
            ) from None
    return _to_naive_utc(value).replace(second=0, microsecond=0)


@dataclass
class AppointmentFilter:
    doctor_id: str | None = None
    user_id: str | None = None
    statuses: tuple[str, ...] | None = None
    date_from: datetime | None = None  # inclusive
    date_to: datetime | None = None  # inclusive


async def list_appointments(session: AsyncSession, f: AppointmentFilter) -> list[Appointment]:
    q = select(Appointment).order_by(Appointment.appointment_date)
    if f.doctor_id is not None:
        q = q.where(Appointment.doctor_id == f.doctor_id)
    if f.user_id is not None:
        q = q.where(Appointment.user_id == f.user_id)
    if f.statuses:
        q = q.where(Appointment.status.in_(f.statuses))
    if f.date_from is not None:
        q = q.where(Appointment.appointment_date >= f.date_from)
    if f.date_to is not None:
        q = q.where(Appointment.appointment_date <= f.date_to)
    result = await session.execute(q)
    return list(result.scalars().all())


def day_start(d: date) -> datetime:
    return datetime.combine(d, time.min)


async def get_appointment(session: AsyncSession, appointment_id: str) -> Appointment:
    appointment = await session.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFoundError(f"Appointment '{appointment_id}' not found")
    return appointment


async def has_live_appointment(session: AsyncSession, user_id: str, doctor_id: str) -> bool:
    """True if the patient has a pending or confirmed appointment with this doctor."""
    result = await session.execute(
        select(Appointment.id)
        .where(
            Appointment.user_id == user_id,
            Appointment.doctor_id == doctor_id,
            Appointment.status.in_(LIVE_STATUSES),
        )
        .limit(1)
    )
    return result.first() is not None


async def _lock_conversation(
    session: AsyncSession, user_id: str, conversation_id: str
) -> Conversation:
    result = await session.execute(
        select(Conversation)
        .where(Conversation.id == conversation_id, Conversation.user_id == user_id)
        .with_for_update()
    )
    conversation = result.scalar_one_or_none()
    if conversation is None:
        raise NotFoundError(f"Conversation '{conversation_id}' not found")
    if conversation.appointment_id is not None:
        raise ConflictAlreadyBooked(
            f"Conversation '{conversation_id}' is already linked to an appointment"
        )
    return conversation


def _violates_patient_doctor_index(e: IntegrityError) -> bool:
    # Postgres names the index, SQLite lists the columns
    message = str(e.orig)
    return "uq_appointments_patient_live_doctor" in message or (
        "appointments.user_id" in message and "appointments.doctor_id" in message
    )


async def create_appointment(
    session: AsyncSession, draft: AppointmentDraft, conversation_id: str
) -> Appointment:
    """Insert a pending appointment and link it to the conversation, all-or-nothing.

    The slot and the patient-doctor pair are re-validated inside the transaction;
    partial unique indexes on live (doctor_id, appointment_date) and live
    (user_id, doctor_id) catch a concurrent booking that commits first.
    """
    appointment_id = uuid4().hex
    slot_start = parse_civil_datetime(draft.appointment_date)
    try:
        conversation = await _lock_conversation(session, draft.user_id, conversation_id)
        if await has_live_appointment(session, draft.user_id, draft.doctor_id):
            raise ConflictAlreadyBooked(
                "You already have a pending or confirmed appointment with this doctor"
            )
        doctor = await get_doctor(session, draft.doctor_id)
        booked = await get_booked_times(session, doctor.uid, slot_start.date())
        free = generate_slots(doctor.work_days(), slot_start.date(), booked)
        if slot_start.strftime("%H:%M") not in free:
            raise SlotUnavailable(
                f"Slot {slot_start:%Y-%m-%d %H:%M} is not available for doctor '{doctor.uid}'"
            )

        now = _utc_naive_now()
        appointment = Appointment(
            id=appointment_id,
            user_id=draft.user_id,
            user_name=draft.user_name,
            doctor_id=doctor.uid,
            doctor_name=draft.doctor_name or doctor.display_name,
            appointment_date=slot_start,
            status=AppointmentStatus.PENDING.value,
            created_at=now,
        )
        session.add(appointment)
        conversation.appointment_id = appointment_id
        conversation.status = CONVERSATION_CLOSED
        conversation.updated_at = now
        session.add(conversation)
        await session.flush()
        await session.commit()
    except SchedulingError:
        await session.rollback()
        raise
    except IntegrityError as e:
        await session.rollback()
        if _violates_patient_doctor_index(e):
            logger.warning(
                "Booking %s raced another booking by %s with doctor %s",
                appointment_id,
                draft.user_id,
                draft.doctor_id,
            )
            raise ConflictAlreadyBooked(
                "You already have a pending or confirmed appointment with this doctor"
            ) from e
        logger.warning(
            "Booking %s lost the race for doctor %s at %s", appointment_id, draft.doctor_id, slot_start
        )
        raise SlotUnavailable(
            f"Slot {slot_start:%Y-%m-%d %H:%M} was just booked by someone else"
        ) from e
    except SQLAlchemyError as e:
        await session.rollback()
        logger.exception("Booking transaction %s aborted: %s", appointment_id, e)
        raise TransactionAborted("Could not save the appointment, please try again") from e

    logger.info(
        "Appointment %s booked: user=%s doctor=%s at %s (conversation %s)",
        appointment_id,
        draft.user_id,
        draft.doctor_id,
        slot_start,
        conversation_id,
    )
    return appointment


async def set_appointment_status(
    session: AsyncSession,
    appointment_id: str,
    status: str | AppointmentStatus,
    doctor_id: str | None = None,
) -> Appointment:
    """Apply a doctor action. If doctor_id is given it must own the appointment."""
    appointment = await get_appointment(session, appointment_id)
    if doctor_id is not None and appointment.doctor_id != doctor_id:
        raise NotFoundError(f"Appointment '{appointment_id}' not found")
    target = check_transition(
        appointment.status,
        status,
        appointment_date=appointment.appointment_date,
        now=_utc_naive_now(),
        require_started_for_completion=settings.enforce_completion_after_start,
    )
    previous = appointment.status
    appointment.status = target.value
    session.add(appointment)
    await session.flush()
    logger.info("Appointment %s: %s -> %s", appointment_id, previous, target.value)
    return appointment
