from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.deps.scheduling import scheduling_http_error
from app.api.v1.api import api_router
from app.core.config import settings
from app.core.database import close_db, init_db
from app.core.exceptions import SchedulingError
from app.core.logging import configure_logging
from app.core.redis import redis_client

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Application starting up", environment=settings.ENVIRONMENT)
    await init_db()
    if settings.SLOT_LOCK_BACKEND == "redis":
        await redis_client.init_redis()

    yield

    logger.info("Application shutting down")
    await redis_client.close()
    await close_db()


app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    error = scheduling_http_error(exc)
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


@app.get("/health")
async def health():
    return {"status": "ok", "version": settings.VERSION}


app.include_router(api_router, prefix="/api/v1")
