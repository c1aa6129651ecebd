# buybox/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from buybox.core.config import get_settings
from buybox.core.logging_config import configure_logging
from buybox.dependencies import build_tracker
from buybox.routes import health, tracker as tracker_routes

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if getattr(app.state, "tracker", None) is None:
        app.state.tracker = build_tracker(settings)

    if settings.TRACKING_ENABLED:
        await app.state.tracker.start()
    else:
        logger.info("Scheduled tracking is disabled. Set TRACKING_ENABLED=true to enable")

    try:
        yield  # This is where the app runs
    finally:
        await app.state.tracker.stop()
        await app.state.tracker.wait_for_idle()


app = FastAPI(
    title="BuyBox Tracker",
    lifespan=lifespan
)

app.include_router(tracker_routes.router)
app.include_router(health.router)
