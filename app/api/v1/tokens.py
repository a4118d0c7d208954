from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.deps import (
    get_availability_service,
    get_booking_service,
    get_release_service,
    get_token_table_service,
)
from app.schemas.token import (
    BlockDayResponse,
    BlockTokenRequest,
    BlockTokenResponse,
    ReleaseResponse,
    ScheduleAvailability,
    TokenResponse,
    TokenTableResponse,
)
from app.services.availability_service import AvailabilityService
from app.services.booking_service import BookingService
from app.services.release_service import ReleaseService
from app.services.token_service import TokenTableService

router = APIRouter()

@router.post("/tokens/block", response_model=BlockTokenResponse)
async def block_token(
    request: BlockTokenRequest,
    service: BookingService = Depends(get_booking_service)
):
    return await service.block_token(
        request.doctor_id, request.schedule_id, request.token_date, request.token_number
    )

@router.get("/token-tables/{token_table_id}", response_model=TokenTableResponse)
async def read_token_table(
    token_table_id: UUID,
    service: TokenTableService = Depends(get_token_table_service)
):
    token_table = await service.get_token_table_by_id(token_table_id)
    tokens = await service.get_tokens(token_table_id)
    return TokenTableResponse(
        id=token_table.id,
        doctor_id=token_table.doctor_id,
        schedule_id=token_table.schedule_id,
        token_date=token_table.token_date,
        start_time=token_table.start_time,
        end_time=token_table.end_time,
        tokens=[TokenResponse.model_validate(token) for token in tokens],
    )

@router.delete("/token-tables/{token_table_id}/tokens/{token_number}/block", response_model=ReleaseResponse)
async def release_token(
    token_table_id: UUID,
    token_number: int,
    service: ReleaseService = Depends(get_release_service)
):
    if await service.release(token_table_id, token_number):
        return ReleaseResponse(success=True)
    return ReleaseResponse(success=False, message="Token is not blocked.")

@router.post("/token-tables/{token_table_id}/block-day", response_model=BlockDayResponse)
async def block_schedule_for_day(
    token_table_id: UUID,
    service: ReleaseService = Depends(get_release_service)
):
    return await service.block_schedule_for_day(token_table_id)

@router.get("/doctors/{doctor_id}/availability", response_model=List[ScheduleAvailability])
async def read_availability(
    doctor_id: UUID,
    at: Optional[datetime] = None,
    service: AvailabilityService = Depends(get_availability_service)
):
    return await service.get_availability(doctor_id, at)
