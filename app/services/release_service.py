import asyncio
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from redis.exceptions import RedisError
from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from app.core.config import settings
from app.core.exceptions import PersistenceError
from app.core.logger import logger
from app.core.redis import RedisClient, redis_client
from app.core.utils import as_utc, utcnow
from app.db.models import (
    FAST_TRACK_TOKEN,
    Booking,
    BookingOtp,
    BookingStatus,
    Token,
    TokenStatus,
)
from app.schemas.token import BlockDayResponse
from app.services.notification_service import NotificationService
from app.services.token_service import TokenTableService

class ReleaseService:
    """
    Returns BLOCKED tokens to OPEN once the grace window has passed, and closes a
    schedule-day on the doctor's request.

    Pending releases live in a Redis sorted set scored by due time, so they
    survive a restart; a sweep over stale BLOCKED rows catches anything the
    queue lost.
    """

    def __init__(self, session: AsyncSession, redis: RedisClient = redis_client):
        self.session = session
        self.redis = redis
        self.tokens = TokenTableService(session)
        self.notifications = NotificationService(session)

    @staticmethod
    def _member(token_table_id: UUID, number: int) -> str:
        return f"{token_table_id}:{number}"

    def _cutoff(self, now: datetime) -> datetime:
        return now - timedelta(seconds=settings.BLOCK_GRACE_SECONDS)

    async def arm(self, token_table_id: UUID, number: int, blocked_at: datetime):
        due_at = as_utc(blocked_at).timestamp() + settings.BLOCK_GRACE_SECONDS
        try:
            await self.redis.schedule_release(self._member(token_table_id, number), due_at)
        except RedisError as exc:
            # The stale-block sweep still releases the token
            logger.warning(f"Could not queue release of token {number} in table {token_table_id}: {exc}")

    async def release(self, token_table_id: UUID, number: int) -> bool:
        released = await self.tokens.transition(token_table_id, number, TokenStatus.OPEN, [TokenStatus.BLOCKED])
        if released:
            logger.info(f"Token number: {number} of table {token_table_id} released to OPEN")
        return released

    async def release_if_expired(self, token_table_id: UUID, number: int, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        released = await self.tokens.transition(
            token_table_id,
            number,
            TokenStatus.OPEN,
            [TokenStatus.BLOCKED],
            blocked_before=self._cutoff(now),
        )
        if released:
            logger.info(f"Token number: {number} has been updated to OPEN status.")
        return released

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        stmt = (
            update(Token)
            .where(Token.status == TokenStatus.BLOCKED, Token.blocked_at <= self._cutoff(now))
            .values(status=TokenStatus.OPEN, blocked_at=None)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"Stale block sweep failed: {exc}")
            return 0
        if result.rowcount:
            logger.info(f"Sweep released {result.rowcount} stale blocked tokens")
        return result.rowcount

    async def run_due(self, now: Optional[datetime] = None) -> int:
        """Process every release whose time has come. Safe to call repeatedly."""
        now = now or utcnow()
        released = 0
        try:
            members = await self.redis.due_releases(as_utc(now).timestamp())
        except RedisError as exc:
            logger.warning(f"Release queue unavailable, falling back to sweep: {exc}")
            members = []

        for member in members:
            try:
                if not await self.redis.claim_release(member):
                    continue
            except RedisError as exc:
                logger.warning(f"Could not claim release {member}: {exc}")
                break
            token_table_id, number = member.rsplit(":", 1)
            try:
                if await self.release_if_expired(UUID(token_table_id), int(number), now):
                    released += 1
            except PersistenceError:
                # Left BLOCKED in the store; the sweep retries it
                continue

        return released + await self.sweep_expired(now)

    async def block_schedule_for_day(self, token_table_id: UUID) -> BlockDayResponse:
        """
        Close what is left of a schedule-day: unbooked tokens become CLOSED,
        every BOOKED booking of the day (fast-track included) is CANCELLED
        together with its token, and users are notified.

        Safe to run again: a booking whose cancellation failed is still BOOKED
        and gets picked up by the next run.
        """
        token_table = await self.tokens.get_token_table_by_id(token_table_id)
        # Plain values only from here on; a rollback expires loaded rows
        day = (token_table.doctor_id, token_table.schedule_id, token_table.token_date)

        close_stmt = (
            update(Token)
            .where(
                Token.token_table_id == token_table_id,
                Token.status.in_([TokenStatus.OPEN, TokenStatus.BLOCKED]),
            )
            .values(status=TokenStatus.CLOSED, blocked_at=None)
            .execution_options(synchronize_session=False)
        )
        try:
            closed = (await self.session.execute(close_stmt)).rowcount
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"Failed to close tokens of table {token_table_id}: {exc}")
            raise PersistenceError("Could not block the schedule.")

        cancelled, failed = [], 0
        for booking in await self._booked_for_day(day):
            outcome = await self._cancel_booking(token_table_id, booking)
            if outcome:
                cancelled.append(booking)
            elif outcome is False:
                failed += 1
        if not failed:
            await self._cancel_orphan_tokens(token_table_id)

        notified = 0
        for booking_id, user_id, token_number, token_date in cancelled:
            if await self._notify_cancellation(booking_id, user_id, token_date):
                notified += 1

        logger.info(
            f"Schedule blocked for table {token_table_id}: {closed} tokens closed, "
            f"{len(cancelled)} bookings cancelled, {failed} failed"
        )
        return BlockDayResponse(
            success=failed == 0,
            message=f"{failed} bookings could not be cancelled, run again to retry." if failed else None,
            closed_tokens=closed,
            cancelled_bookings=len(cancelled),
            notified_users=notified,
        )

    async def _booked_for_day(self, day: tuple) -> List[Tuple[int, str, int, date]]:
        doctor_id, schedule_id, token_date = day
        stmt = select(Booking.booking_id, Booking.user_id, Booking.token_number, Booking.token_date).where(
            Booking.doctor_id == doctor_id,
            Booking.schedule_id == schedule_id,
            Booking.token_date == token_date,
            Booking.status == BookingStatus.BOOKED,
        ).order_by(Booking.booking_id)
        return [tuple(row) for row in (await self.session.execute(stmt)).all()]

    async def _cancel_booking(self, token_table_id: UUID, booking: tuple) -> Optional[bool]:
        booking_id, _, token_number, _ = booking
        stmt = (
            update(Booking)
            .where(Booking.booking_id == booking_id, Booking.status == BookingStatus.BOOKED)
            .values(status=BookingStatus.CANCELLED, cancelled_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        try:
            if (await self.session.execute(stmt)).rowcount != 1:
                # Cancelled or visited elsewhere in the meantime
                await self.session.rollback()
                return None
            if token_number != FAST_TRACK_TOKEN:
                # A token already CANCELLED by an earlier partial run stays as is
                await self.tokens.apply_transition(
                    token_table_id, token_number, TokenStatus.CANCELLED, [TokenStatus.BOOKED]
                )
            await self.session.execute(delete(BookingOtp).where(BookingOtp.booking_id == booking_id))
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"Failed to cancel booking {booking_id}: {exc}")
            return False
        return True

    async def _cancel_orphan_tokens(self, token_table_id: UUID):
        # BOOKED tokens whose booking never got written
        stmt = (
            update(Token)
            .where(Token.token_table_id == token_table_id, Token.status == TokenStatus.BOOKED)
            .values(status=TokenStatus.CANCELLED)
            .execution_options(synchronize_session=False)
        )
        try:
            orphans = (await self.session.execute(stmt)).rowcount
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"Failed to cancel leftover booked tokens of table {token_table_id}: {exc}")
            return
        if orphans:
            logger.warning(f"Cancelled {orphans} booked tokens without a booking in table {token_table_id}")

    async def _notify_cancellation(self, booking_id: int, user_id: str, token_date: date) -> bool:
        try:
            await self.notifications.send_to_user(
                user_id,
                "Appointment cancelled",
                f"Your booking {booking_id} for {token_date.isoformat()} "
                f"has been cancelled as the doctor is unavailable.",
                payload={"booking_id": booking_id},
            )
        except Exception as exc:
            # Best-effort; the cancellation stands
            await self.session.rollback()
            logger.warning(f"Failed to notify user {user_id} about booking {booking_id}: {exc}")
            return False
        return True


async def run_release_worker(
    session_factory: async_sessionmaker,
    redis: RedisClient = redis_client,
    interval: Optional[float] = None,
):
    interval = interval or settings.RELEASE_POLL_SECONDS
    logger.info(f"Release worker started, polling every {interval}s")
    while True:
        try:
            async with session_factory() as session:
                await ReleaseService(session, redis).run_due()
        except Exception as exc:
            logger.exception(f"Release worker iteration failed: {exc}")
        await asyncio.sleep(interval)
