from sqlmodel import SQLModel, Field
from datetime import datetime

from app.core.utils import utcnow

class SequenceCounter(SQLModel, table=True):
    __tablename__ = "sequence_counters"
    kind: str = Field(primary_key=True)  # booking, doctor_pd, hospital_pd
    number: int
    updated_at: datetime = Field(default_factory=utcnow)
