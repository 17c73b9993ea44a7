from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lms import wiring
from lms.api.admin import router as admin_router
from lms.api.analytics import router as analytics_router
from lms.api.auth import router as auth_router
from lms.api.courses import router as courses_router
from lms.api.enrollments import router as enrollments_router
from lms.api.errors import install_error_handlers
from lms.api.groups import router as groups_router
from lms.api.health import router as health_router
from lms.api.homeworks import router as homeworks_router
from lms.api.metrics_endpoint import router as metrics_router
from lms.api.notifications import router as notifications_router
from lms.api.quizzes import router as quizzes_router
from lms.api.realtime import router as realtime_router
from lms.api.streams import router as streams_router
from lms.api.tariffs import router as tariffs_router
from lms.api.users import router as users_router
from lms.core.config import SETTINGS
from lms.core.logging import setup_logging
from lms.db.engine import lifespan_db
from lms.db.redis import lifespan_redis
from lms.middleware.metrics import MetricsMiddleware
from lms.middleware.request_context import (
    RequestContextMiddleware,
    install_request_filter,
)

setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
# handler-level so records propagated from child loggers get request_id too
for _handler in logging.getLogger().handlers:
    install_request_filter(_handler)

logger = logging.getLogger(__name__)


async def _close_channels() -> None:
    for channel in wiring.channels:
        aclose = getattr(channel, "aclose", None)
        if aclose is not None:
            await aclose()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # teardown runs in reverse order: scheduler, Redis, database
    async with lifespan_db():
        async with lifespan_redis():
            async with wiring.deadline_scheduler.lifespan(
                enabled=not SETTINGS.is_test
            ):
                yield
                await _close_channels()


app = FastAPI(
    title="lms-backend",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last added runs first: RequestContext -> Metrics -> CORS -> route
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

install_error_handlers(app)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(courses_router)
app.include_router(enrollments_router)
app.include_router(homeworks_router)
app.include_router(quizzes_router)
app.include_router(groups_router)
app.include_router(streams_router)
app.include_router(tariffs_router)
app.include_router(notifications_router)
app.include_router(admin_router)
app.include_router(analytics_router)
app.include_router(realtime_router)

logger.info(
    "lms-backend started  env=%s log_level=%s port=%d channels=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    ",".join(wiring.notification_service.channel_names),
    "on" if SETTINGS.is_dev else "off",
)
