"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from study_tracker.routers import admin

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the report scheduler with the app and stop it on shutdown."""
    from study_tracker.scheduler import ReportScheduler

    app.state.report_scheduler = None
    try:
        app.state.report_scheduler = ReportScheduler()
        app.state.report_scheduler.start()
        logger.info("Scheduler started, checking accountability reports every minute")
    except Exception as e:
        logger.warning("Scheduler failed to start: %s", e)

    yield

    if app.state.report_scheduler is not None:
        app.state.report_scheduler.shutdown()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Study Tracker",
        description="Study session tracking with daily accountability email reports.",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.get("/health", include_in_schema=False)
    async def health():
        return {"status": "ok"}

    app.include_router(admin.router)

    return app
