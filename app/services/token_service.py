from datetime import date, datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.exceptions import ConflictError, NotFoundError, PersistenceError
from app.core.logger import logger
from app.core.utils import day_of_week
from app.db.models import FAST_TRACK_TOKEN, Schedule, Token, TokenStatus, TokenTable

class TokenTableService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_token_table(self, doctor_id: UUID, schedule_id: UUID, token_date: date) -> TokenTable:
        stmt = select(TokenTable).where(
            TokenTable.doctor_id == doctor_id,
            TokenTable.schedule_id == schedule_id,
            TokenTable.token_date == token_date,
        )
        result = await self.session.execute(stmt)
        token_table = result.scalars().first()
        if not token_table:
            raise NotFoundError("No tokens have been released for this schedule and date.")
        return token_table

    async def get_token_table_by_id(self, token_table_id: UUID) -> TokenTable:
        token_table = await self.session.get(TokenTable, token_table_id)
        if not token_table:
            raise NotFoundError("Token table not found")
        return token_table

    async def get_tokens(self, token_table_id: UUID) -> List[Token]:
        stmt = select(Token).where(Token.token_table_id == token_table_id).order_by(Token.number)
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        return result.scalars().all()

    async def get_token(self, token_table_id: UUID, number: int) -> Optional[Token]:
        stmt = select(Token).where(Token.token_table_id == token_table_id, Token.number == number)
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        return result.scalars().first()

    async def transition(
        self,
        token_table_id: UUID,
        number: int,
        to_status: TokenStatus,
        from_statuses: Iterable[TokenStatus],
        blocked_at: Optional[datetime] = None,
        blocked_before: Optional[datetime] = None,
    ) -> bool:
        """
        Move one token to `to_status` if it is currently in one of `from_statuses`.

        The check and the write are a single UPDATE, so of two concurrent callers
        racing on the same token only one sees a matched row. Returns whether the
        token moved. `blocked_before` additionally requires the block to be older
        than that instant.
        """
        try:
            moved = await self.apply_transition(
                token_table_id, number, to_status, from_statuses, blocked_at, blocked_before
            )
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"Token {number} of table {token_table_id} could not move to {to_status.value}: {exc}")
            raise PersistenceError("Could not update the token status.")
        return moved

    async def apply_transition(
        self,
        token_table_id: UUID,
        number: int,
        to_status: TokenStatus,
        from_statuses: Iterable[TokenStatus],
        blocked_at: Optional[datetime] = None,
        blocked_before: Optional[datetime] = None,
    ) -> bool:
        """Same as `transition` but inside the caller's transaction; no commit."""
        conditions = [
            Token.token_table_id == token_table_id,
            Token.number == number,
            Token.status.in_(list(from_statuses)),
        ]
        if blocked_before is not None:
            conditions.append(Token.blocked_at <= blocked_before)

        stmt = (
            update(Token)
            .where(*conditions)
            .values(status=to_status, blocked_at=blocked_at if to_status == TokenStatus.BLOCKED else None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def confirm_schedule(self, doctor_id: UUID, schedule_id: UUID, token_date: date) -> TokenTable:
        """Instantiate the day's token table from the weekly schedule template."""
        schedule = await self.session.get(Schedule, schedule_id)
        if not schedule or schedule.doctor_id != doctor_id or not schedule.is_active:
            raise NotFoundError("Schedule not found")
        if schedule.day_of_week != day_of_week(token_date):
            raise ConflictError("Schedule does not run on the given date.")

        token_table = TokenTable(
            doctor_id=doctor_id,
            schedule_id=schedule_id,
            token_date=token_date,
            start_time=schedule.start_time,
            end_time=schedule.end_time,
        )
        try:
            self.session.add(token_table)
            await self.session.flush()
            for template in schedule.tokens:
                if template["number"] == FAST_TRACK_TOKEN:
                    continue
                self.session.add(Token(
                    token_table_id=token_table.id,
                    number=template["number"],
                    type=template.get("type"),
                    time=template.get("time"),
                    status=TokenStatus.OPEN,
                ))
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ConflictError("Schedule already confirmed for this date.")
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error(f"Failed to create token table for schedule {schedule_id}: {exc}")
            raise PersistenceError("Could not confirm the schedule.")

        await self.session.refresh(token_table)
        logger.info(f"Token table {token_table.id} created for schedule {schedule_id} on {token_date}")
        return token_table

    async def pending_confirmations(self, doctor_id: UUID, token_date: date) -> List[Schedule]:
        """Active schedules on that weekday the doctor has not confirmed yet."""
        try:
            stmt = select(Schedule).where(
                Schedule.doctor_id == doctor_id,
                Schedule.day_of_week == day_of_week(token_date),
                Schedule.is_active == True,
            ).order_by(Schedule.start_time)
            result = await self.session.execute(stmt)
            schedules = result.scalars().all()

            confirmed_stmt = select(TokenTable.schedule_id).where(
                TokenTable.doctor_id == doctor_id,
                TokenTable.token_date == token_date,
            )
            confirmed = set((await self.session.execute(confirmed_stmt)).scalars().all())
        except SQLAlchemyError as exc:
            logger.error(f"Failed to load pending confirmations for doctor {doctor_id}: {exc}")
            return []
        return [schedule for schedule in schedules if schedule.id not in confirmed]
