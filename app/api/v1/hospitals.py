from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.deps import get_hospital_service
from app.schemas.hospital import HospitalCreate, HospitalResponse
from app.services.hospital_service import HospitalService

router = APIRouter()

@router.post("/", response_model=HospitalResponse)
async def create_hospital(
    hospital: HospitalCreate,
    service: HospitalService = Depends(get_hospital_service)
):
    return await service.create_hospital(hospital)

@router.get("/{hospital_id}", response_model=HospitalResponse)
async def read_hospital(
    hospital_id: UUID,
    service: HospitalService = Depends(get_hospital_service)
):
    return await service.get_hospital(hospital_id)
