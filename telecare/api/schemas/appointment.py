from pydantic import BaseModel

from telecare.models.appointment import AppointmentStatus


class AvailableSlotsResponse(BaseModel):
    doctor_id: str
    date: str  # YYYY-MM-DD
    slots: list[str]  # HH:MM


class LiveAppointmentResponse(BaseModel):
    doctor_id: str
    has_live_appointment: bool


class BookAppointmentRequest(BaseModel):
    user_name: str
    doctor_id: str
    doctor_name: str | None = None  # defaults to "Dr. First Last"
    appointment_date: str  # YYYY-MM-DDTHH:MM, fixed UTC grid
    conversation_id: str


class StatusUpdateRequest(BaseModel):
    status: AppointmentStatus
