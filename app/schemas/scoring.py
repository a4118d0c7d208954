from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime

class TrustVisits(BaseModel):
    v1: int = Field(default=1, gt=0)
    v2: int = Field(default=3, gt=0)
    v3: int = Field(default=5, gt=0)
    v4: int = Field(default=10, gt=0)

class TrustPoints(BaseModel):
    p1: float = 1
    p2: float = 5
    p3: float = 10
    p4: float = 20

class TrustConfig(BaseModel):
    visits: TrustVisits = TrustVisits()
    points: TrustPoints = TrustPoints()

class DistanceBand(BaseModel):
    max_km: Optional[float] = None  # None means open-ended
    points: float

class TimeBand(BaseModel):
    max_seconds: Optional[float] = None
    points: float

class PopularityConfig(BaseModel):
    bands: List[DistanceBand] = Field(
        default_factory=lambda: [
            DistanceBand(max_km=5, points=1),
            DistanceBand(max_km=15, points=2),
            DistanceBand(max_km=30, points=3),
            DistanceBand(max_km=None, points=5),
        ],
        min_length=4,
        max_length=4,
    )

class ScheduleSpeedConfig(BaseModel):
    bands: List[TimeBand] = Field(
        default_factory=lambda: [
            TimeBand(max_seconds=15 * 60, points=10),
            TimeBand(max_seconds=30 * 60, points=7),
            TimeBand(max_seconds=60 * 60, points=5),
            TimeBand(max_seconds=2 * 60 * 60, points=3),
            TimeBand(max_seconds=None, points=1),
        ],
        min_length=5,
        max_length=5,
    )

class ScoringConfig(BaseModel):
    trust: TrustConfig = TrustConfig()
    popularity: PopularityConfig = PopularityConfig()
    schedule: ScheduleSpeedConfig = ScheduleSpeedConfig()

class ScoresResponse(BaseModel):
    doctor_id: UUID
    trust: float
    popularity: float
    schedule: float
    total: float
    computed_at: datetime

    class Config:
        from_attributes = True

class ScoringRunResponse(BaseModel):
    message: str
