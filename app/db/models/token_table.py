import enum
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from typing import Optional
from datetime import date, datetime
from uuid import UUID, uuid4

from app.core.utils import utcnow

FAST_TRACK_TOKEN = 0

class TokenStatus(str, enum.Enum):
    OPEN = "OPEN"
    BLOCKED = "BLOCKED"
    BOOKED = "BOOKED"
    VISITED = "VISITED"
    CANCELLED = "CANCELLED"
    CLOSED = "CLOSED"

class TokenTable(SQLModel, table=True):
    __tablename__ = "token_tables"
    __table_args__ = (UniqueConstraint("doctor_id", "schedule_id", "token_date"),)
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    doctor_id: UUID = Field(foreign_key="doctors.id", index=True)
    schedule_id: UUID = Field(foreign_key="schedules.id", index=True)
    token_date: date = Field(index=True)
    start_time: str
    end_time: str
    created_at: datetime = Field(default_factory=utcnow)

class Token(SQLModel, table=True):
    """One slot of a token table. Transitions are single-row conditional updates."""
    __tablename__ = "tokens"
    __table_args__ = (UniqueConstraint("token_table_id", "number"),)
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    token_table_id: UUID = Field(foreign_key="token_tables.id", index=True)
    number: int
    type: Optional[str] = None
    time: Optional[str] = None
    status: TokenStatus = Field(default=TokenStatus.OPEN, index=True)
    blocked_at: Optional[datetime] = None

    def snapshot(self) -> dict:
        """Copy stored on a booking, without the status."""
        return {"number": self.number, "type": self.type, "time": self.time}
