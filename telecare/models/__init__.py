from telecare.models.doctor import Doctor, DoctorPublic, TimeRange, WorkDay, WorkingHoursUpdate
from telecare.models.conversation import Conversation
from telecare.models.appointment import (
    Appointment,
    AppointmentDraft,
    AppointmentPublic,
    AppointmentStatus,
)

__all__ = [
    "Doctor",
    "DoctorPublic",
    "TimeRange",
    "WorkDay",
    "WorkingHoursUpdate",
    "Conversation",
    "Appointment",
    "AppointmentDraft",
    "AppointmentPublic",
    "AppointmentStatus",
]
