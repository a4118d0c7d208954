from datetime import date
from typing import Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.exceptions import (
    BookingValidationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
)
from app.core.logger import logger
from app.core.redis import RedisClient, redis_client
from app.core.utils import generate_otp, haversine_km, to_utc, utcnow
from app.db.models import (
    FAST_TRACK_TOKEN,
    Booking,
    BookingOtp,
    BookingStatus,
    Hospital,
    Schedule,
    TokenStatus,
    TokenTable,
)
from app.schemas.booking import BookingCreate
from app.schemas.token import BlockTokenResponse
from app.services.availability_service import booking_window
from app.services.release_service import ReleaseService
from app.services.sequence_service import SequenceKind, SequenceService
from app.services.token_service import TokenTableService

class BookingService:
    def __init__(self, session: AsyncSession, redis: RedisClient = redis_client):
        self.session = session
        self.tokens = TokenTableService(session)
        self.release = ReleaseService(session, redis)
        self.sequence = SequenceService(session, redis)

    async def block_token(self, doctor_id: UUID, schedule_id: UUID, token_date: date, token_number: int) -> BlockTokenResponse:
        token_table = await self.tokens.get_token_table(doctor_id, schedule_id, token_date)

        if token_number == FAST_TRACK_TOKEN:
            return BlockTokenResponse(success=True)

        blocked_at = utcnow()
        blocked = await self.tokens.transition(
            token_table.id,
            token_number,
            TokenStatus.BLOCKED,
            [TokenStatus.OPEN],
            blocked_at=blocked_at,
        )
        if not blocked:
            token = await self.tokens.get_token(token_table.id, token_number)
            if token is None:
                raise NotFoundError(f"Token {token_number} does not exist for this schedule.")
            if token.status == TokenStatus.BLOCKED:
                raise ConflictError("Selected token has been blocked by someone. Please try again after sometime.")
            raise ConflictError(f"Selected token is not available ({token.status.value}).")

        await self.release.arm(token_table.id, token_number, blocked_at)
        logger.info(f"Token number: {token_number} has been blocked.")
        return BlockTokenResponse(success=True)

    async def book_token(self, data: BookingCreate) -> Tuple[bool, int]:
        """
        Convert a blocked token (or a fast-track request) into a booking.

        Writes happen in the order token, booking ID, booking, OTP. If anything
        before the booking row fails the token goes back to OPEN. Not safe to
        retry blindly: the OTP is generated once per call.
        """
        token_table = await self.tokens.get_token_table(data.doctor_id, data.schedule_id, data.token_date)
        table_id = token_table.id
        fast_track = data.token_number == FAST_TRACK_TOKEN

        if fast_track:
            snapshot = {"number": FAST_TRACK_TOKEN, "type": "FAST_TRACK", "time": None}
        else:
            booked = await self.tokens.transition(
                table_id, data.token_number, TokenStatus.BOOKED, [TokenStatus.BLOCKED]
            )
            token = await self.tokens.get_token(table_id, data.token_number)
            if not booked:
                if token is None:
                    raise NotFoundError(f"Token {data.token_number} does not exist for this schedule.")
                if token.status == TokenStatus.BOOKED:
                    raise ConflictError("Selected token has already been booked.")
                raise ConflictError("Selected token must be blocked before booking.")
            snapshot = token.snapshot()

        try:
            booking = await self._insert_booking(token_table, data, snapshot)
        except (PersistenceError, ConflictError, SQLAlchemyError) as exc:
            if not fast_track:
                await self.tokens.transition(
                    table_id, data.token_number, TokenStatus.OPEN, [TokenStatus.BOOKED]
                )
            logger.error(f"Booking of token {data.token_number} in table {table_id} failed, token reopened: {exc}")
            if isinstance(exc, SQLAlchemyError):
                raise PersistenceError("Could not save the booking.")
            raise

        booking_id = booking.booking_id
        try:
            self.session.add(BookingOtp(booking_id=booking_id, otp=generate_otp()))
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"OTP could not be stored for booking {booking_id}: {exc}")

        logger.info(f"Booking {booking_id} created for token {data.token_number} of table {table_id}")
        return True, booking_id

    async def _insert_booking(self, token_table: TokenTable, data: BookingCreate, snapshot: dict) -> Booking:
        # Read everything off the table row before the sequence commit
        values = dict(
            doctor_id=token_table.doctor_id,
            schedule_id=token_table.schedule_id,
            token_table_id=token_table.id,
            token_date=token_table.token_date,
            start_time=token_table.start_time,
            end_time=token_table.end_time,
        )
        window_start, _, end = booking_window(token_table)
        distance_km = await self._distance_to_hospital(token_table.schedule_id, data.location)

        booking_id = await self.sequence.next(SequenceKind.BOOKING)
        booking = Booking(
            booking_id=booking_id,
            user_id=data.user_id,
            token_number=data.token_number,
            token=snapshot,
            start_timestamp=to_utc(window_start),
            end_timestamp=to_utc(end),
            booked_at=utcnow(),
            lat_lng=data.location,
            distance_km=distance_km,
            status=BookingStatus.BOOKED,
            **values,
        )
        self.session.add(booking)
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return booking

    async def _distance_to_hospital(self, schedule_id: UUID, location) -> Optional[float]:
        if not location:
            return None
        stmt = select(Hospital).join(Schedule, Schedule.hospital_id == Hospital.id).where(Schedule.id == schedule_id)
        hospital = (await self.session.execute(stmt)).scalars().first()
        if not hospital or hospital.latitude is None or hospital.longitude is None:
            return None
        return haversine_km(location, (hospital.latitude, hospital.longitude))

    async def get_booking(self, booking_id: Union[int, str]) -> Booking:
        stmt = select(Booking).where(Booking.booking_id == self._parse_booking_id(booking_id))
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        booking = result.scalars().first()
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    async def get_booking_status(self, booking_id: Union[int, str]) -> BookingStatus:
        return (await self.get_booking(booking_id)).status

    async def cancel_booking(self, booking_id: Union[int, str]) -> bool:
        booking = await self.get_booking(booking_id)
        if booking.status == BookingStatus.VISITED:
            raise ConflictError("Visited bookings cannot be cancelled.")
        if booking.status == BookingStatus.CANCELLED:
            raise ConflictError("Booking is already cancelled.")

        booking_id = booking.booking_id
        if not await self._move_booking(booking, BookingStatus.CANCELLED, TokenStatus.OPEN, cancelled_at=utcnow()):
            raise ConflictError("Booking status changed, please refresh.")
        logger.info(f"Booking {booking_id} cancelled")
        return True

    async def confirm_visit(self, booking_id: Union[int, str], doctor_id: Optional[UUID] = None) -> bool:
        booking = await self.get_booking(booking_id)
        if doctor_id is not None and booking.doctor_id != doctor_id:
            raise NotFoundError("Appointment made for different doctor.")
        if booking.status == BookingStatus.VISITED:
            return True
        if booking.status == BookingStatus.CANCELLED:
            raise ConflictError("Cancelled bookings cannot be visited.")

        booking_id = booking.booking_id
        if not await self._move_booking(booking, BookingStatus.VISITED, TokenStatus.VISITED, visited_at=utcnow()):
            # Lost a race with another confirmation or a cancellation
            return await self.get_booking_status(booking_id) == BookingStatus.VISITED
        logger.info(f"Visit confirmed for booking {booking_id}")
        return True

    async def verify_booking_otp(self, booking_id: Union[int, str], otp: Union[int, str]) -> bool:
        booking_id = self._parse_booking_id(booking_id)
        otp_value = str(otp).strip()
        if not otp_value.isdigit():
            raise BookingValidationError("OTP must be numeric.")

        booking_otp = await self.session.get(BookingOtp, booking_id, populate_existing=True)
        if not booking_otp:
            raise NotFoundError("No OTP pending for this booking.")
        if int(otp_value) != booking_otp.otp:
            raise BookingValidationError("Incorrect OTP entered.")

        return await self.confirm_visit(booking_id)

    async def _move_booking(
        self,
        booking: Booking,
        to_status: BookingStatus,
        token_status: TokenStatus,
        **values,
    ) -> bool:
        """
        Move a BOOKED booking, its token and its OTP in one transaction, so a
        failure leaves all three as they were and the call can be retried.
        """
        booking_id, table_id, number = booking.booking_id, booking.token_table_id, booking.token_number
        stmt = (
            update(Booking)
            .where(Booking.booking_id == booking_id, Booking.status == BookingStatus.BOOKED)
            .values(status=to_status, **values)
            .execution_options(synchronize_session=False)
        )
        try:
            moved = (await self.session.execute(stmt)).rowcount == 1
            if moved:
                if number != FAST_TRACK_TOKEN:
                    if not await self.tokens.apply_transition(table_id, number, token_status, [TokenStatus.BOOKED]):
                        logger.warning(f"Token {number} of booking {booking_id} was not BOOKED")
                await self.session.execute(delete(BookingOtp).where(BookingOtp.booking_id == booking_id))
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"Failed to move booking {booking_id} to {to_status.value}: {exc}")
            raise PersistenceError("Could not update the booking.")
        return moved

    @staticmethod
    def _parse_booking_id(booking_id: Union[int, str]) -> int:
        try:
            return int(booking_id)
        except (TypeError, ValueError):
            raise BookingValidationError("Booking id must be numeric.")
