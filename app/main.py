from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.activity import router as activity_router
from app.api.assessments import router as assessments_router
from app.api.courses import router as courses_router
from app.api.health import router as health_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.progress import router as progress_router
from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db.engine import lifespan_db
from app.db.redis import lifespan_redis
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import RequestContextMiddleware
from app.services.errors import RecordStoreError, WriteConflictError

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # teardown runs in reverse order
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="progress-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: RequestContext -> Metrics -> CORS -> route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)


@app.exception_handler(WriteConflictError)
async def write_conflict_handler(_request: Request, exc: WriteConflictError):
    # Another request updated the same record first; the client may retry.
    logger.warning("Write conflict on %s %s", exc.record, exc.key)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "record was modified concurrently, retry"},
    )


@app.exception_handler(RecordStoreError)
async def record_store_handler(_request: Request, exc: RecordStoreError):
    logger.error("Record store unavailable: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "progress store unavailable"},
    )


app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(courses_router)
app.include_router(assessments_router)
app.include_router(activity_router)
app.include_router(progress_router)

logger.info(
    "progress-service started  env=%s log_level=%s port=%d completion_mode=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.lesson_completion_mode,
    "on" if SETTINGS.is_dev else "off",
)
