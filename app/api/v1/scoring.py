from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.api.deps import get_scoring_service
from app.db.session import get_session_factory
from app.schemas.scoring import ScoresResponse, ScoringRunResponse
from app.services.scoring_service import ScoringService, run_scoring_job

router = APIRouter()

@router.post("/run", response_model=ScoringRunResponse, status_code=status.HTTP_202_ACCEPTED)
async def run_scoring(
    background_tasks: BackgroundTasks,
    session_factory: async_sessionmaker = Depends(get_session_factory)
):
    background_tasks.add_task(run_scoring_job, session_factory)
    return ScoringRunResponse(message="Scoring run started")

@router.get("/{doctor_id}", response_model=ScoresResponse)
async def read_scores(
    doctor_id: UUID,
    service: ScoringService = Depends(get_scoring_service)
):
    return await service.get_scores(doctor_id)
