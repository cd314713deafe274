"""
Appointment status state machine.

    pending ──accept──▶ confirmed ──mark done──▶ completed
       │
       └──reject──▶ declined

``declined`` and ``completed`` are terminal. Every transition is triggered by
the doctor and touches a single record.
"""

import logging
from datetime import datetime

from telecare.models.appointment import AppointmentStatus
from telecare.services.errors import InvalidStatusTransition, ValidationFailure

logger = logging.getLogger(__name__)

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.DECLINED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED}),
    AppointmentStatus.DECLINED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def parse_status(value: str | AppointmentStatus) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        raise ValidationFailure(f"Unknown appointment status '{value}'") from None


def allowed_transitions(current: str | AppointmentStatus) -> frozenset[AppointmentStatus]:
    return TRANSITIONS[parse_status(current)]


def check_transition(
    current: str | AppointmentStatus,
    requested: str | AppointmentStatus,
    *,
    appointment_date: datetime | None = None,
    now: datetime | None = None,
    require_started_for_completion: bool = False,
) -> AppointmentStatus:
    """Validate a status change and return the target status.

    Raises:
        InvalidStatusTransition: the pair is not an allowed edge, or completion
            was requested before the appointment time while that rule is on.
    """
    src = parse_status(current)
    dst = parse_status(requested)
    if dst not in TRANSITIONS[src]:
        raise InvalidStatusTransition(src.value, dst.value)
    if (
        require_started_for_completion
        and dst is AppointmentStatus.COMPLETED
        and appointment_date is not None
        and now is not None
        and now <= appointment_date
    ):
        logger.debug("Completion rejected: %s is before appointment at %s", now, appointment_date)
        raise InvalidStatusTransition(src.value, dst.value)
    return dst
