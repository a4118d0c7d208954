import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ["RELEASE_WORKER_ENABLED"] = "false"

from datetime import date, timedelta

import fakeredis
import pytest
import pytest_asyncio
from fakeredis import aioredis
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.redis import RedisClient
from app.core.utils import day_of_week, local_today
from app.db.models import Doctor, Hospital, Schedule, SQLModel
from app.services.token_service import TokenTableService


def next_weekday(weekday: int, start: date = None) -> date:
    """First date on or after `start` falling on `weekday` (0=Sunday)."""
    day = start or local_today()
    while day_of_week(day) != weekday:
        day += timedelta(days=1)
    return day


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def redis():
    return RedisClient(aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True))


@pytest.fixture
def token_date():
    return next_weekday(1, local_today() + timedelta(days=1))


@pytest_asyncio.fixture
async def hospital(session):
    hospital = Hospital(pd_number="HL1", name="City Care", latitude=12.9716, longitude=77.5946)
    session.add(hospital)
    await session.commit()
    return hospital


@pytest_asyncio.fixture
async def doctor(session):
    doctor = Doctor(pd_number="DR1", name="Dr. Asha Rao", specialization="General Medicine")
    session.add(doctor)
    await session.commit()
    return doctor


@pytest_asyncio.fixture
async def schedule(session, doctor, hospital, token_date):
    schedule = Schedule(
        doctor_id=doctor.id,
        hospital_id=hospital.id,
        day_of_week=day_of_week(token_date),
        start_time="10:00",
        end_time="12:00",
        tokens=[
            {"number": 1, "type": "NORMAL", "time": "10:00"},
            {"number": 2, "type": "NORMAL", "time": "10:15"},
            {"number": 3, "type": "NORMAL", "time": "10:30"},
        ],
    )
    session.add(schedule)
    await session.commit()
    return schedule


@pytest_asyncio.fixture
async def token_table(session, doctor, schedule, token_date):
    return await TokenTableService(session).confirm_schedule(doctor.id, schedule.id, token_date)


def fail_once(monkeypatch, session, prefix: str):
    """Make the first statement on `session` whose SQL starts with `prefix` raise."""
    real_execute = session.execute
    failed = []

    async def execute(statement, *args, **kwargs):
        if not failed and str(statement).startswith(prefix):
            failed.append(statement)
            raise OperationalError(prefix, {}, Exception("disk I/O error"))
        return await real_execute(statement, *args, **kwargs)

    monkeypatch.setattr(session, "execute", execute)
    return failed
