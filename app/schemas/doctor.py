from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime

class DoctorBase(BaseModel):
    name: str
    specialization: Optional[str] = None
    years_of_experience: Optional[int] = None
    degree: Optional[str] = None
    user_id: Optional[str] = None

class DoctorCreate(DoctorBase):
    pass

class DoctorResponse(DoctorBase):
    id: UUID
    pd_number: str
    created_at: datetime

    class Config:
        from_attributes = True
