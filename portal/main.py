from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portal.api.assignments import router as assignments_router
from portal.api.courses import router as courses_router
from portal.api.dependencies import get_services
from portal.api.health import router as health_router
from portal.api.metrics_endpoint import router as metrics_router
from portal.api.notifications import router as notifications_router
from portal.api.students import router as students_router
from portal.core.config import SETTINGS
from portal.core.logging import setup_logging
from portal.middleware.metrics import MetricsMiddleware
from portal.middleware.request_context import RequestContextMiddleware
from portal.services.seed import seed_demo_data

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    if SETTINGS.seed_demo_data:
        await seed_demo_data(get_services())
    yield
    logger.info("education-portal shutting down")


app = FastAPI(
    title="education-portal",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[SETTINGS.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext (outermost) → Metrics → CORS → route
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(assignments_router)
app.include_router(courses_router)
app.include_router(health_router)
app.include_router(notifications_router)
app.include_router(students_router)

logger.info(
    "education-portal started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
