from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import settings
from app.core.logger import logger
from app.core.utils import get_timezone, local_datetime, local_now
from app.db.models import Token, TokenStatus, TokenTable
from app.schemas.token import ScheduleAvailability


def booking_window(token_table: TokenTable, window_hours: Optional[int] = None) -> Tuple[datetime, datetime, datetime]:
    """Return (window_start, start, end) for the table's day, in the pinned timezone."""
    if window_hours is None:
        window_hours = settings.BOOKING_WINDOW_HOURS
    start = local_datetime(token_table.token_date, token_table.start_time)
    end = local_datetime(token_table.token_date, token_table.end_time)
    return start - timedelta(hours=window_hours), start, end


def _as_local(now: Optional[datetime]) -> datetime:
    if now is None:
        return local_now()
    if now.tzinfo is None:
        return now.replace(tzinfo=get_timezone())
    return now.astimezone(get_timezone())


def is_booking_open(
    token_table: TokenTable,
    tokens: Iterable[Token],
    now: Optional[datetime] = None,
    window_hours: Optional[int] = None,
) -> bool:
    """
    Booking is allowed from `window_hours` before the schedule starts until it
    ends, and only while at least one token is still OPEN.
    """
    window_start, _, end = booking_window(token_table, window_hours)
    now = _as_local(now)
    if not window_start <= now <= end:
        return False
    return any(token.status == TokenStatus.OPEN for token in tokens)


def is_schedule_active(token_table: TokenTable, tokens: Iterable[Token], now: Optional[datetime] = None) -> bool:
    """A confirmed schedule stays listed until it ends while tokens are OPEN or BOOKED."""
    _, _, end = booking_window(token_table)
    if _as_local(now) > end:
        return False
    return any(token.status in (TokenStatus.OPEN, TokenStatus.BOOKED) for token in tokens)


class AvailabilityService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_availability(self, doctor_id: UUID, now: Optional[datetime] = None) -> List[ScheduleAvailability]:
        now = _as_local(now)
        try:
            stmt = select(TokenTable).where(
                TokenTable.doctor_id == doctor_id,
                TokenTable.token_date >= now.date(),
            ).order_by(TokenTable.token_date, TokenTable.start_time)
            result = await self.session.execute(stmt)
            token_tables = result.scalars().all()

            availability = []
            for token_table in token_tables:
                tokens_stmt = select(Token).where(Token.token_table_id == token_table.id)
                tokens_result = await self.session.execute(tokens_stmt.execution_options(populate_existing=True))
                tokens = tokens_result.scalars().all()
                availability.append(ScheduleAvailability(
                    token_table_id=token_table.id,
                    schedule_id=token_table.schedule_id,
                    token_date=token_table.token_date,
                    is_booking_open=is_booking_open(token_table, tokens, now),
                ))
            return availability
        except SQLAlchemyError as exc:
            logger.error(f"Failed to compute availability for doctor {doctor_id}: {exc}")
            return []
