"""
app.py — FastAPI application factory and lifecycle wiring.

This is the ASGI application object imported by uvicorn.
It wires the lottery session service and registers routers.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from backend.controllers.lottery_controller import router as lottery_router
from backend.services.scheduling import ThreadingTickScheduler, TickScheduler
from backend.services.session_service import LotterySessionService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    scheduler: Optional[TickScheduler] = None,
) -> FastAPI:
    """
    Build and wire the FastAPI application.

    The session service is injected via app.state; no module keeps
    lottery state of its own.
    """
    settings = settings or get_settings()

    session_service = LotterySessionService(
        settings=settings,
        scheduler=scheduler or ThreadingTickScheduler(),
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Startup complete | roll_interval_ms=%s | max_sessions=%s",
            settings.roll_interval_ms,
            settings.max_sessions,
        )
        yield
        logger.info("Shutdown: cancelling active lottery rolls")
        app.state.session_service.close()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(lottery_router)

    app.state.session_service = session_service

    return app


# Module-level app object for uvicorn
app = create_app()
