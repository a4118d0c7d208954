from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.exceptions import BookingValidationError, ConflictError, NotFoundError
from app.core.logger import logger
from app.core.redis import RedisClient, redis_client
from app.core.utils import parse_wall_time
from app.db.models import FAST_TRACK_TOKEN, Doctor, Hospital, Schedule
from app.schemas.doctor import DoctorCreate
from app.schemas.schedule import ScheduleCreate
from app.schemas.token import TokenTemplate
from app.services.sequence_service import SequenceKind, SequenceService

class DoctorService:
    def __init__(self, session: AsyncSession, redis: RedisClient = redis_client):
        self.session = session
        self.sequence = SequenceService(session, redis)

    async def create_doctor(self, doctor_data: DoctorCreate) -> Doctor:
        pd_number = await self.sequence.next_pd_number(SequenceKind.DOCTOR_PD)
        doctor = Doctor(**doctor_data.model_dump(), pd_number=pd_number)
        self.session.add(doctor)
        await self.session.commit()
        await self.session.refresh(doctor)
        logger.info(f"Doctor {doctor.name} created as {pd_number}")
        return doctor

    async def get_doctor(self, doctor_id: UUID) -> Doctor:
        doctor = await self.session.get(Doctor, doctor_id)
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    async def create_schedule(self, doctor_id: UUID, schedule_data: ScheduleCreate) -> Schedule:
        await self.get_doctor(doctor_id)
        hospital = await self.session.get(Hospital, schedule_data.hospital_id)
        if not hospital:
            raise NotFoundError("Hospital not found")

        try:
            if parse_wall_time(schedule_data.start_time) >= parse_wall_time(schedule_data.end_time):
                raise BookingValidationError("Schedule must end after it starts.")
        except ValueError as exc:
            raise BookingValidationError(str(exc))

        numbers = [token.number for token in schedule_data.tokens]
        if len(numbers) != len(set(numbers)):
            raise BookingValidationError("Token numbers must be unique.")
        if any(number <= FAST_TRACK_TOKEN for number in numbers):
            raise BookingValidationError("Token numbers start at 1; 0 is reserved for fast-track.")

        stmt = select(Schedule).where(
            Schedule.doctor_id == doctor_id,
            Schedule.day_of_week == schedule_data.day_of_week,
            Schedule.start_time == schedule_data.start_time,
            Schedule.is_active == True,
        )
        result = await self.session.execute(stmt)
        if result.scalars().first():
            raise ConflictError("Schedule already exists.")

        schedule = Schedule(
            doctor_id=doctor_id,
            hospital_id=schedule_data.hospital_id,
            day_of_week=schedule_data.day_of_week,
            start_time=schedule_data.start_time,
            end_time=schedule_data.end_time,
            tokens=[token.model_dump() for token in schedule_data.tokens],
        )
        self.session.add(schedule)
        await self.session.commit()
        await self.session.refresh(schedule)
        return schedule

    async def get_schedule(self, schedule_id: UUID) -> Schedule:
        schedule = await self.session.get(Schedule, schedule_id)
        if not schedule:
            raise NotFoundError("Schedule not found")
        return schedule

    async def add_token(self, schedule_id: UUID, token: TokenTemplate) -> Schedule:
        schedule = await self.get_schedule(schedule_id)
        if token.number <= FAST_TRACK_TOKEN:
            raise BookingValidationError("Token numbers start at 1; 0 is reserved for fast-track.")
        if any(existing["number"] == token.number for existing in schedule.tokens):
            raise ConflictError("Token number exists!")

        # Reassign the list so the JSON column is flagged dirty
        schedule.tokens = sorted(schedule.tokens + [token.model_dump()], key=lambda t: t["number"])
        self.session.add(schedule)
        await self.session.commit()
        await self.session.refresh(schedule)
        return schedule

    async def delete_token(self, schedule_id: UUID, number: int) -> Schedule:
        schedule = await self.get_schedule(schedule_id)
        remaining = [token for token in schedule.tokens if token["number"] != number]
        if len(remaining) == len(schedule.tokens):
            raise NotFoundError("Token not found")

        schedule.tokens = remaining
        self.session.add(schedule)
        await self.session.commit()
        await self.session.refresh(schedule)
        return schedule

    async def deactivate_schedule(self, schedule_id: UUID) -> dict:
        schedule = await self.get_schedule(schedule_id)

        schedule.is_active = False
        self.session.add(schedule)
        await self.session.commit()
        await self.session.refresh(schedule)
        return {"message": "Schedule deactivated successfully"}

    async def get_schedules(self, doctor_id: UUID) -> List[Schedule]:
        query = select(Schedule).where(Schedule.doctor_id == doctor_id, Schedule.is_active == True)
        result = await self.session.execute(query)
        return result.scalars().all()
