from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4

from app.core.utils import utcnow

class Doctor(SQLModel, table=True):
    __tablename__ = "doctors"
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    pd_number: str = Field(unique=True, index=True)
    user_id: Optional[str] = Field(default=None, index=True)
    name: str
    specialization: Optional[str] = Field(default=None, index=True)
    years_of_experience: Optional[int] = None
    degree: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
