from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from app.core.exceptions import NotFoundError
from app.core.logger import logger
from app.core.redis import RedisClient, redis_client
from app.db.models import Hospital
from app.schemas.hospital import HospitalCreate
from app.services.sequence_service import SequenceKind, SequenceService

class HospitalService:
    def __init__(self, session: AsyncSession, redis: RedisClient = redis_client):
        self.session = session
        self.sequence = SequenceService(session, redis)

    async def create_hospital(self, hospital_data: HospitalCreate) -> Hospital:
        pd_number = await self.sequence.next_pd_number(SequenceKind.HOSPITAL_PD)
        hospital = Hospital(**hospital_data.model_dump(), pd_number=pd_number)
        self.session.add(hospital)
        await self.session.commit()
        await self.session.refresh(hospital)
        logger.info(f"Hospital {hospital.name} created as {pd_number}")
        return hospital

    async def get_hospital(self, hospital_id: UUID) -> Hospital:
        hospital = await self.session.get(Hospital, hospital_id)
        if not hospital:
            raise NotFoundError("Hospital not found")
        return hospital
