from datetime import date
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.deps import get_doctor_service, get_token_table_service
from app.schemas.doctor import DoctorCreate, DoctorResponse
from app.schemas.schedule import (
    PendingConfirmations,
    ScheduleConfirm,
    ScheduleCreate,
    ScheduleResponse,
    TokenAddResponse,
)
from app.schemas.token import TokenResponse, TokenTableResponse, TokenTemplate
from app.services.doctor_service import DoctorService
from app.services.token_service import TokenTableService

router = APIRouter()

@router.post("/", response_model=DoctorResponse)
async def create_doctor(
    doctor: DoctorCreate,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.create_doctor(doctor)

@router.get("/{doctor_id}", response_model=DoctorResponse)
async def read_doctor(
    doctor_id: UUID,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.get_doctor(doctor_id)

@router.post("/{doctor_id}/schedules", response_model=ScheduleResponse)
async def create_schedule(
    doctor_id: UUID,
    schedule: ScheduleCreate,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.create_schedule(doctor_id, schedule)

@router.get("/{doctor_id}/schedules", response_model=List[ScheduleResponse])
async def read_schedules(
    doctor_id: UUID,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.get_schedules(doctor_id)

@router.delete("/{doctor_id}/schedules/{schedule_id}")
async def deactivate_schedule(
    doctor_id: UUID,
    schedule_id: UUID,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.deactivate_schedule(schedule_id)

@router.post("/{doctor_id}/schedules/{schedule_id}/tokens", response_model=TokenAddResponse)
async def add_schedule_token(
    doctor_id: UUID,
    schedule_id: UUID,
    token: TokenTemplate,
    service: DoctorService = Depends(get_doctor_service)
):
    await service.add_token(schedule_id, token)
    return TokenAddResponse(success=True, message="Token added")

@router.delete("/{doctor_id}/schedules/{schedule_id}/tokens/{number}", response_model=TokenAddResponse)
async def delete_schedule_token(
    doctor_id: UUID,
    schedule_id: UUID,
    number: int,
    service: DoctorService = Depends(get_doctor_service)
):
    await service.delete_token(schedule_id, number)
    return TokenAddResponse(success=True, message="Token deleted")

@router.post("/{doctor_id}/schedules/{schedule_id}/confirm", response_model=TokenTableResponse)
async def confirm_schedule(
    doctor_id: UUID,
    schedule_id: UUID,
    request: ScheduleConfirm,
    service: TokenTableService = Depends(get_token_table_service)
):
    token_table = await service.confirm_schedule(doctor_id, schedule_id, request.token_date)
    tokens = await service.get_tokens(token_table.id)
    return TokenTableResponse(
        id=token_table.id,
        doctor_id=token_table.doctor_id,
        schedule_id=token_table.schedule_id,
        token_date=token_table.token_date,
        start_time=token_table.start_time,
        end_time=token_table.end_time,
        tokens=[TokenResponse.model_validate(token) for token in tokens],
    )

@router.get("/{doctor_id}/confirmations", response_model=PendingConfirmations)
async def read_pending_confirmations(
    doctor_id: UUID,
    token_date: date,
    service: TokenTableService = Depends(get_token_table_service)
):
    schedules = await service.pending_confirmations(doctor_id, token_date)
    return PendingConfirmations(
        token_date=token_date,
        schedules=[ScheduleResponse.model_validate(schedule) for schedule in schedules],
    )
