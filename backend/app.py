"""
FastAPI application for the PR comment dashboard.

Exposes the cached snapshot over a small REST API and, when enabled, runs
the refresh scheduler on a background thread for the lifetime of the app.
"""

import threading
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.routes import config, refresher, router
from pipeline.refresher import Refresher
from pipeline.scheduler import RefreshScheduler
from utils.logger import setup_logger

logger = setup_logger(config.log_level, name=__name__)

API_VERSION = "1.0.0"


def start_background_scheduler(refresher: Refresher, stop_event: threading.Event) -> threading.Thread:
    """Run the refresh scheduler on a daemon thread until stop_event is set."""
    scheduler = RefreshScheduler.from_config(config.scheduler)
    thread = threading.Thread(
        target=scheduler.run_forever,
        kwargs={"refresh": refresher.refresh_if_idle, "stop_event": stop_event},
        name="refresh-scheduler",
        daemon=True,
    )
    thread.start()
    return thread


@asynccontextmanager
async def lifespan(app: FastAPI):
    stop_event = threading.Event()
    if config.scheduler.enabled:
        start_background_scheduler(refresher, stop_event)
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false); refreshes are manual only")
    yield
    stop_event.set()


app = FastAPI(
    title="PR Comment Radar API",
    description="Actionable pull-request comments for the monitored repositories",
    version=API_VERSION,
    lifespan=lifespan,
)

# Dashboard front end is served from a different origin during development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/health")
def health():
    """Liveness check."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION,
        "schedulerEnabled": config.scheduler.enabled,
    }


logger.info("FastAPI app initialized")
