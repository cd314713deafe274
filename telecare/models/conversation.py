from datetime import UTC, datetime

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

CONVERSATION_OPEN = "open"
CONVERSATION_CLOSED = "closed"


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class Conversation(SQLModel, table=True):
    """Chat session owned by the intake assistant; the scheduler only sets the booking link."""

    __tablename__ = "conversations"
    id: str = Field(primary_key=True)
    user_id: str = Field(index=True)
    name: str = ""
    status: str = CONVERSATION_OPEN
    recommended_doctor_id: str | None = None
    appointment_id: str | None = Field(default=None, index=True)  # set once, on booking
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=sa.DateTime())
    updated_at: datetime = Field(default_factory=_utc_naive_now, sa_type=sa.DateTime())
