from sqlmodel import SQLModel, Field
from datetime import datetime
from uuid import UUID, uuid4

from app.core.utils import utcnow

class Scores(SQLModel, table=True):
    __tablename__ = "scores"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    doctor_id: UUID = Field(foreign_key="doctors.id", unique=True, index=True)
    trust: float = 0
    popularity: float = 0
    schedule: float = 0
    total: float = 0
    computed_at: datetime = Field(default_factory=utcnow)
