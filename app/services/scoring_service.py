import json
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.core.logger import logger
from app.core.utils import as_utc, haversine_km, utcnow
from app.db.models import Booking, BookingStatus, Hospital, Schedule, Scores
from app.schemas.scoring import DistanceBand, ScoresResponse, ScoringConfig, TimeBand, TrustConfig


def load_scoring_config(path: Optional[str] = None) -> ScoringConfig:
    path = path or settings.SCORING_CONFIG_FILE
    if not path:
        return ScoringConfig()
    with open(path, "r", encoding="utf-8") as config_file:
        return ScoringConfig.model_validate(json.load(config_file))


def trust_points(visit_count: int, config: TrustConfig) -> float:
    """
    Points one customer contributes for `visit_count` visits to the same doctor.

    Every visit earns p1. Reaching v2 and v3 visits earns one-off bonuses p2
    and p3. p4 is earned at v4 visits and again at every further v2 visits.
    """
    visits, points = config.visits, config.points
    if visit_count < visits.v1:
        return 0
    total = visit_count * points.p1
    if visit_count >= visits.v2:
        total += points.p2
    if visit_count >= visits.v3:
        total += points.p3
    if visit_count >= visits.v4:
        total += points.p4 * (1 + (visit_count - visits.v4) // visits.v2)
    return total


def _band_points(value: float, bands: Sequence, limit_attr: str) -> float:
    for band in bands:
        limit = getattr(band, limit_attr)
        if limit is None or value <= limit:
            return band.points
    return 0


def popularity_points(distance_km: float, bands: Sequence[DistanceBand]) -> float:
    return _band_points(distance_km, bands, "max_km")


def schedule_points(mean_delay_seconds: float, bands: Sequence[TimeBand]) -> float:
    return _band_points(mean_delay_seconds, bands, "max_seconds")


def booking_distance(booking: Booking, hospital: Hospital) -> Optional[float]:
    if booking.distance_km is not None:
        return booking.distance_km
    if not booking.lat_lng or hospital.latitude is None or hospital.longitude is None:
        return None
    return haversine_km(booking.lat_lng, (hospital.latitude, hospital.longitude))


class ScoringService:
    """Recomputes every doctor's scores from the full VISITED booking history."""

    def __init__(self, session: AsyncSession, config: Optional[ScoringConfig] = None):
        self.session = session
        self.config = config or load_scoring_config()

    async def run(self) -> Dict[UUID, ScoresResponse]:
        stmt = (
            select(Booking, Hospital)
            .join(Schedule, Schedule.id == Booking.schedule_id)
            .join(Hospital, Hospital.id == Schedule.hospital_id)
            .where(Booking.status == BookingStatus.VISITED)
        )
        rows = (await self.session.execute(stmt)).all()

        by_doctor = defaultdict(list)
        for booking, hospital in rows:
            by_doctor[booking.doctor_id].append((booking, hospital))

        # Compute everything before writing: a rollback expires the loaded rows
        computed = [self.compute(doctor_id, visits) for doctor_id, visits in by_doctor.items()]

        results = {}
        for scores in computed:
            doctor_id = scores.doctor_id
            try:
                await self._replace_scores(scores)
            except SQLAlchemyError as exc:
                await self.session.rollback()
                logger.error(f"Failed to store scores for doctor {doctor_id}: {exc}")
                continue
            results[doctor_id] = ScoresResponse.model_validate(scores)

        logger.info(f"Scoring run finished: {len(results)} of {len(by_doctor)} doctors updated")
        return results

    def compute(self, doctor_id: UUID, visits: List[tuple]) -> Scores:
        bookings = [booking for booking, _ in visits]
        trust = self.trust_score(bookings)
        popularity = self.popularity_score(visits)
        schedule = self.schedule_score(bookings)
        return Scores(
            doctor_id=doctor_id,
            trust=trust,
            popularity=popularity,
            schedule=schedule,
            total=trust + popularity + schedule,
            computed_at=utcnow(),
        )

    def trust_score(self, bookings: Iterable[Booking]) -> float:
        visits_by_user = defaultdict(int)
        for booking in bookings:
            visits_by_user[booking.user_id] += 1
        return sum(trust_points(count, self.config.trust) for count in visits_by_user.values())

    def popularity_score(self, visits: Iterable[tuple]) -> float:
        total = 0
        for booking, hospital in visits:
            distance = booking_distance(booking, hospital)
            if distance is not None:
                total += popularity_points(distance, self.config.popularity.bands)
        return total

    def schedule_score(self, bookings: Iterable[Booking]) -> float:
        # How quickly each schedule-day filled once its booking window opened
        delays = defaultdict(list)
        for booking in bookings:
            delay = (as_utc(booking.booked_at) - as_utc(booking.start_timestamp)).total_seconds()
            delays[(booking.token_date, booking.schedule_id)].append(max(delay, 0))
        return sum(
            schedule_points(sum(group) / len(group), self.config.schedule.bands)
            for group in delays.values()
        )

    async def _replace_scores(self, scores: Scores):
        await self.session.execute(delete(Scores).where(Scores.doctor_id == scores.doctor_id))
        self.session.add(scores)
        await self.session.commit()

    async def get_scores(self, doctor_id: UUID) -> Scores:
        stmt = select(Scores).where(Scores.doctor_id == doctor_id)
        scores = (await self.session.execute(stmt)).scalars().first()
        if not scores:
            raise NotFoundError("Scores not computed for this doctor yet.")
        return scores


async def run_scoring_job(session_factory: async_sessionmaker):
    """Background entry point; opens its own session."""
    try:
        async with session_factory() as session:
            await ScoringService(session).run()
    except Exception as exc:
        logger.exception(f"Scoring run failed: {exc}")
