import enum

from redis.exceptions import LockError, RedisError
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ConflictError, PersistenceError
from app.core.logger import logger
from app.core.redis import RedisClient, redis_client
from app.core.utils import format_pd_number, utcnow
from app.db.models import SequenceCounter

class SequenceKind(str, enum.Enum):
    BOOKING = "booking"
    DOCTOR_PD = "doctor_pd"
    HOSPITAL_PD = "hospital_pd"

PD_PREFIXES = {
    SequenceKind.DOCTOR_PD: "DR",
    SequenceKind.HOSPITAL_PD: "HL",
}

class SequenceService:
    """
    Hands out numbers from the per-kind counters.

    The value returned is the one stored *before* the increment, so the first
    number issued for a fresh counter is SEQUENCE_SEED.
    """

    def __init__(self, session: AsyncSession, redis: RedisClient = redis_client):
        self.session = session
        self.redis = redis

    async def next(self, kind: SequenceKind) -> int:
        lock = self.redis.lock(
            f"sequence:{kind.value}",
            timeout=settings.SEQUENCE_LOCK_TIMEOUT,
            blocking_timeout=settings.SEQUENCE_LOCK_BLOCKING_TIMEOUT,
        )
        try:
            async with lock:
                return await self._increment(kind)
        except LockError as exc:
            logger.error(f"Could not acquire sequence lock for {kind.value}: {exc}")
            raise PersistenceError("Sequence generator busy. Try again.")
        except RedisError as exc:
            logger.error(f"Redis unavailable for sequence {kind.value}: {exc}")
            raise PersistenceError("Sequence generator unavailable.")

    async def next_pd_number(self, kind: SequenceKind) -> str:
        return format_pd_number(PD_PREFIXES[kind], await self.next(kind))

    async def _increment(self, kind: SequenceKind) -> int:
        try:
            counter = await self.session.get(SequenceCounter, kind.value, populate_existing=True)
            if counter is None:
                counter = SequenceCounter(kind=kind.value, number=settings.SEQUENCE_SEED + 1)
                self.session.add(counter)
                await self.session.commit()
                return settings.SEQUENCE_SEED

            current = counter.number
            # Compare-and-set: a writer that bypassed the lock makes this a no-op
            stmt = (
                update(SequenceCounter)
                .where(SequenceCounter.kind == kind.value, SequenceCounter.number == current)
                .values(number=current + 1, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            if result.rowcount != 1:
                await self.session.rollback()
                raise ConflictError(f"Sequence {kind.value} changed concurrently.")
            await self.session.commit()
            return current
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"Failed to increment sequence {kind.value}: {exc}")
            raise PersistenceError("Could not allocate a sequence number.")
