"""Failures raised by the scheduling services.

Each error is scoped to the single requested operation and carries the HTTP
status the API layer answers with.
"""


class SchedulingError(Exception):
    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(SchedulingError):
    """Referenced doctor, conversation or appointment does not exist."""

    status_code = 404


class ValidationFailure(SchedulingError):
    """Malformed input or unsupported request, rejected before any write."""

    status_code = 422


class InvalidStatusTransition(ValidationFailure):
    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot move appointment from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested


class ConflictAlreadyBooked(SchedulingError):
    """Patient already holds a pending/confirmed appointment with this doctor,
    or the conversation is already linked to an appointment."""

    status_code = 409


class SlotUnavailable(SchedulingError):
    """Requested start time is outside the doctor's hours or already taken."""

    status_code = 409


class TransactionAborted(SchedulingError):
    """The multi-record write did not commit. Retry with a fresh appointment id."""

    status_code = 409
