from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.redis import RedisClient, redis_client
from app.db.session import get_session
from app.services.availability_service import AvailabilityService
from app.services.booking_service import BookingService
from app.services.doctor_service import DoctorService
from app.services.hospital_service import HospitalService
from app.services.release_service import ReleaseService
from app.services.scoring_service import ScoringService
from app.services.token_service import TokenTableService

def get_redis() -> RedisClient:
    return redis_client

async def get_booking_service(
    session: AsyncSession = Depends(get_session),
    redis: RedisClient = Depends(get_redis),
) -> BookingService:
    return BookingService(session, redis)

async def get_release_service(
    session: AsyncSession = Depends(get_session),
    redis: RedisClient = Depends(get_redis),
) -> ReleaseService:
    return ReleaseService(session, redis)

async def get_token_table_service(session: AsyncSession = Depends(get_session)) -> TokenTableService:
    return TokenTableService(session)

async def get_availability_service(session: AsyncSession = Depends(get_session)) -> AvailabilityService:
    return AvailabilityService(session)

async def get_doctor_service(
    session: AsyncSession = Depends(get_session),
    redis: RedisClient = Depends(get_redis),
) -> DoctorService:
    return DoctorService(session, redis)

async def get_hospital_service(
    session: AsyncSession = Depends(get_session),
    redis: RedisClient = Depends(get_redis),
) -> HospitalService:
    return HospitalService(session, redis)

async def get_scoring_service(session: AsyncSession = Depends(get_session)) -> ScoringService:
    return ScoringService(session)
