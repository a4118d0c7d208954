from datetime import timedelta

import pytest

from app.core.exceptions import ConflictError, NotFoundError
from app.db.models import TokenStatus
from app.services.token_service import TokenTableService


@pytest.mark.asyncio
async def test_confirm_schedule_opens_every_template_token(session, token_table):
    tokens = await TokenTableService(session).get_tokens(token_table.id)

    assert [token.number for token in tokens] == [1, 2, 3]
    assert all(token.status == TokenStatus.OPEN for token in tokens)
    assert token_table.start_time == "10:00"
    assert token_table.end_time == "12:00"


@pytest.mark.asyncio
async def test_confirm_schedule_twice_conflicts(session, doctor, schedule, token_date, token_table):
    with pytest.raises(ConflictError):
        await TokenTableService(session).confirm_schedule(doctor.id, schedule.id, token_date)


@pytest.mark.asyncio
async def test_confirm_schedule_on_wrong_weekday(session, doctor, schedule, token_date):
    with pytest.raises(ConflictError):
        await TokenTableService(session).confirm_schedule(doctor.id, schedule.id, token_date + timedelta(days=1))


@pytest.mark.asyncio
async def test_pending_confirmations_drops_confirmed_schedules(session, doctor, schedule, token_date):
    service = TokenTableService(session)

    pending = await service.pending_confirmations(doctor.id, token_date)
    assert [item.id for item in pending] == [schedule.id]

    await service.confirm_schedule(doctor.id, schedule.id, token_date)
    assert await service.pending_confirmations(doctor.id, token_date) == []


@pytest.mark.asyncio
async def test_transition_only_moves_from_expected_status(session, token_table):
    service = TokenTableService(session)

    assert await service.transition(token_table.id, 1, TokenStatus.BOOKED, [TokenStatus.BLOCKED]) is False
    assert await service.transition(token_table.id, 1, TokenStatus.BLOCKED, [TokenStatus.OPEN]) is True
    assert (await service.get_token(token_table.id, 1)).status == TokenStatus.BLOCKED


@pytest.mark.asyncio
async def test_missing_token_table(session, doctor, schedule, token_date):
    with pytest.raises(NotFoundError):
        await TokenTableService(session).get_token_table(doctor.id, schedule.id, token_date)
