from typing import Optional

from fastapi import APIRouter, Depends

from app.api.deps import get_booking_service
from app.schemas.booking import (
    BookingActionResponse,
    BookingCreate,
    BookingResponse,
    BookingStatusResponse,
    VerifyOtpRequest,
    VisitRequest,
)
from app.services.booking_service import BookingService

router = APIRouter()

@router.post("/", response_model=BookingResponse)
async def book_token(
    request: BookingCreate,
    service: BookingService = Depends(get_booking_service)
):
    success, booking_id = await service.book_token(request)
    return BookingResponse(success=success, booking_id=booking_id)

@router.get("/{booking_id}/status", response_model=BookingStatusResponse)
async def read_booking_status(
    booking_id: int,
    service: BookingService = Depends(get_booking_service)
):
    return BookingStatusResponse(booking_id=booking_id, status=await service.get_booking_status(booking_id))

@router.post("/{booking_id}/cancel", response_model=BookingActionResponse)
async def cancel_booking(
    booking_id: int,
    service: BookingService = Depends(get_booking_service)
):
    return BookingActionResponse(success=await service.cancel_booking(booking_id))

@router.post("/{booking_id}/visit", response_model=BookingActionResponse)
async def confirm_visit(
    booking_id: int,
    request: Optional[VisitRequest] = None,
    service: BookingService = Depends(get_booking_service)
):
    doctor_id = request.doctor_id if request else None
    return BookingActionResponse(success=await service.confirm_visit(booking_id, doctor_id))

@router.post("/{booking_id}/verify-otp", response_model=BookingActionResponse)
async def verify_booking_otp(
    booking_id: int,
    request: VerifyOtpRequest,
    service: BookingService = Depends(get_booking_service)
):
    return BookingActionResponse(success=await service.verify_booking_otp(booking_id, request.otp))
