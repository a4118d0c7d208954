import json
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import NotFoundError
from app.db.models import Booking, BookingStatus, Doctor, Schedule
from app.schemas.scoring import PopularityConfig, ScheduleSpeedConfig, ScoringConfig, TrustConfig
from app.services.scoring_service import (
    ScoringService,
    load_scoring_config,
    popularity_points,
    schedule_points,
    trust_points,
)

WINDOW_OPEN = datetime(2030, 1, 7, 0, 30, tzinfo=timezone.utc)


def test_trust_points_thresholds():
    config = TrustConfig()

    assert trust_points(0, config) == 0
    assert trust_points(1, config) == 1
    assert trust_points(3, config) == 3 + 5
    assert trust_points(5, config) == 20
    assert trust_points(10, config) == 10 + 5 + 10 + 20
    assert trust_points(13, config) == 13 + 5 + 10 + 40


def test_popularity_bands():
    bands = PopularityConfig().bands

    assert popularity_points(2.0, bands) == 1
    assert popularity_points(5.0, bands) == 1
    assert popularity_points(12.0, bands) == 2
    assert popularity_points(25.0, bands) == 3
    assert popularity_points(400.0, bands) == 5


def test_schedule_bands():
    bands = ScheduleSpeedConfig().bands

    assert schedule_points(60, bands) == 10
    assert schedule_points(1200, bands) == 7
    assert schedule_points(3000, bands) == 5
    assert schedule_points(5000, bands) == 3
    assert schedule_points(86400, bands) == 1


def visited(doctor, schedule, user_id, booking_id, delay_minutes=10, distance_km=3.0):
    return Booking(
        booking_id=booking_id,
        user_id=user_id,
        doctor_id=doctor.id,
        schedule_id=schedule.id,
        token_table_id=uuid4(),
        token_date=WINDOW_OPEN.date(),
        token_number=booking_id,
        token={"number": booking_id, "type": "NORMAL", "time": None},
        start_time="10:00",
        end_time="12:00",
        start_timestamp=WINDOW_OPEN,
        end_timestamp=WINDOW_OPEN + timedelta(hours=6),
        booked_at=WINDOW_OPEN + timedelta(minutes=delay_minutes),
        distance_km=distance_km,
        status=BookingStatus.VISITED,
    )


@pytest.mark.asyncio
async def test_run_scores_each_doctor(session, doctor, schedule):
    session.add_all([visited(doctor, schedule, "user-1", n) for n in range(1, 6)])
    session.add(visited(doctor, schedule, "user-2", 6, delay_minutes=40, distance_km=20.0))
    cancelled = visited(doctor, schedule, "user-3", 7)
    cancelled.status = BookingStatus.CANCELLED
    session.add(cancelled)
    await session.commit()

    results = await ScoringService(session, ScoringConfig()).run()

    scores = results[doctor.id]
    # user-1: 5 visits -> 20, user-2: 1 visit -> 1
    assert scores.trust == 21
    # five bookings within 5 km, one at 20 km
    assert scores.popularity == 5 * 1 + 3
    # one schedule-day, mean delay 15 minutes
    assert scores.schedule == 10
    assert scores.total == 21 + 8 + 10

    stored = await ScoringService(session).get_scores(doctor.id)
    assert stored.total == scores.total


@pytest.mark.asyncio
async def test_run_replaces_previous_scores(session, doctor, schedule):
    session.add(visited(doctor, schedule, "user-1", 1))
    await session.commit()
    service = ScoringService(session, ScoringConfig())
    await service.run()

    session.add(visited(doctor, schedule, "user-1", 2))
    await session.commit()
    results = await service.run()

    assert results[doctor.id].trust == 2
    assert (await service.get_scores(doctor.id)).trust == 2


@pytest.mark.asyncio
async def test_failed_write_does_not_stop_other_doctors(session, doctor, hospital, schedule, monkeypatch):
    other = Doctor(pd_number="DR2", name="Dr. Vikram Nair")
    session.add(other)
    await session.commit()
    other_schedule = Schedule(
        doctor_id=other.id,
        hospital_id=hospital.id,
        day_of_week=schedule.day_of_week,
        start_time="14:00",
        end_time="16:00",
    )
    session.add(other_schedule)
    await session.commit()
    session.add(visited(doctor, schedule, "user-1", 1))
    session.add(visited(other, other_schedule, "user-2", 2))
    await session.commit()

    service = ScoringService(session, ScoringConfig())
    real_replace = service._replace_scores
    failing_doctor = doctor.id
    other_id = other.id

    async def flaky(scores):
        if scores.doctor_id == failing_doctor:
            raise SQLAlchemyError("disk full")
        await real_replace(scores)

    monkeypatch.setattr(service, "_replace_scores", flaky)

    results = await service.run()

    assert list(results) == [other_id]
    with pytest.raises(NotFoundError):
        await service.get_scores(failing_doctor)


def test_visit_thresholds_must_be_positive(tmp_path):
    config_file = tmp_path / "scoring.json"
    config_file.write_text(json.dumps({"trust": {"visits": {"v1": 1, "v2": 0, "v3": 5, "v4": 10}}}))

    with pytest.raises(ValidationError):
        load_scoring_config(str(config_file))


def test_scoring_config_file_overrides_defaults(tmp_path):
    config_file = tmp_path / "scoring.json"
    config_file.write_text(json.dumps({"trust": {"points": {"p1": 2}}}))

    config = load_scoring_config(str(config_file))

    assert trust_points(1, config.trust) == 2
    assert config.popularity.bands == PopularityConfig().bands
