"""FastAPI application factory."""

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from kids_checkin.api.admin import router as admin_router
from kids_checkin.api.checkins import router as checkins_router
from kids_checkin.app_logging import configure_logging
from kids_checkin.containers import AppContainer


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        interval = app.state.container.settings.sweep_interval_seconds
        stop = asyncio.Event()
        sweeper_task: asyncio.Task[None] | None = None
        if interval > 0:
            sweeper_task = asyncio.create_task(
                app.state.container.expiry_sweeper.run(interval, stop)
            )
            logger.info("Started expiry sweeper", extra={"interval": interval})
        yield
        stop.set()
        if sweeper_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper_task

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)
    app.include_router(checkins_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
