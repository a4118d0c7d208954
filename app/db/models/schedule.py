from sqlmodel import SQLModel, Field
from sqlalchemy import Column
from typing import List
from uuid import UUID, uuid4

from .types import JSONType

class Schedule(SQLModel, table=True):
    __tablename__ = "schedules"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    doctor_id: UUID = Field(foreign_key="doctors.id", index=True)
    hospital_id: UUID = Field(foreign_key="hospitals.id", index=True)
    day_of_week: int = Field(index=True)  # 0=Sunday..6=Saturday
    start_time: str  # wall clock, "10:00" or "10:00 AM"
    end_time: str
    # Template tokens: [{"number": 1, "type": "NORMAL", "time": "10:00"}, ...]
    tokens: List[dict] = Field(default_factory=list, sa_column=Column(JSONType, nullable=False))
    is_active: bool = Field(default=True)
