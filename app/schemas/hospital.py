from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime

class HospitalBase(BaseModel):
    name: str
    address: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

class HospitalCreate(HospitalBase):
    pass

class HospitalResponse(HospitalBase):
    id: UUID
    pd_number: str
    created_at: datetime

    class Config:
        from_attributes = True
