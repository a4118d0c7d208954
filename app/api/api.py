from fastapi import APIRouter
from app.api.v1 import bookings, doctors, hospitals, scoring, tokens

api_router = APIRouter()

api_router.include_router(hospitals.router, prefix="/hospitals", tags=["hospitals"])
api_router.include_router(doctors.router, prefix="/doctors", tags=["doctors"])
api_router.include_router(tokens.router, tags=["tokens"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
api_router.include_router(scoring.router, prefix="/scoring", tags=["scoring"])
