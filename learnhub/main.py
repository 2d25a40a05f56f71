from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnhub.api.courses import router as courses_router
from learnhub.api.dependencies import seed_demo_user
from learnhub.api.health import router as health_router
from learnhub.api.metrics_endpoint import router as metrics_router
from learnhub.api.progress import router as progress_router
from learnhub.core.config import SETTINGS
from learnhub.core.logging import setup_logging
from learnhub.db.engine import async_session_factory, lifespan_db
from learnhub.db.redis import lifespan_redis
from learnhub.middleware.metrics import MetricsMiddleware
from learnhub.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    if SETTINGS.is_dev and async_session_factory is None:
        await seed_demo_user()
    # Nested so teardown runs in reverse order of startup.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="learnhub",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext -> Metrics -> CORS -> route handler,
# so every request has an id before metrics are recorded.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(courses_router)
app.include_router(progress_router)

logger.info(
    "learnhub started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
