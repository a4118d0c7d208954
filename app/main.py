import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import BookingError
from app.core.logger import logger
from app.core.redis import redis_client
from app.db.session import async_session_maker
from app.middleware.log_middleware import LogMiddleware
from app.services.release_service import run_release_worker

@asynccontextmanager
async def lifespan(app: FastAPI):
    worker = None
    if settings.RELEASE_WORKER_ENABLED:
        worker = asyncio.create_task(run_release_worker(async_session_maker, redis_client))
    yield
    if worker:
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass
    await redis_client.close()
    logger.info("Shutting down PopularDoctor API")

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LogMiddleware)

@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Something went wrong. Please try again."},
    )

@app.get("/")
async def root():
    return {"message": "Welcome to PopularDoctor API"}

from app.api.api import api_router
app.include_router(api_router, prefix=settings.API_V1_STR)
