"""Vinyl Scrobbler — FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from sqlalchemy.engine import make_url

from scrobbler.api import pubsub, system
from scrobbler.config import settings
from scrobbler.database import init_db
from scrobbler.services.pipeline import close_pipeline

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # --- Startup ---
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)

    # Ensure the SQLite directory exists
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite" and url.database:
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    await init_db()
    logger.info("Database initialized")

    yield

    # --- Shutdown ---
    await close_pipeline()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

# --- API routes ---
app.include_router(system.router)
app.include_router(pubsub.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("scrobbler.main:app", host=settings.host, port=settings.port)
