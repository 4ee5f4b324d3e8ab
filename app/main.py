from __future__ import annotations
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from app.api import router
from app.web import router as web_router
from datastore.changes import build_default_changes
from datastore.sensor_table import build_default_table
from logging_config import configure_logging
from services.feed import build_default_feed
from services.history import build_default_history


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    table = build_default_table()
    feed = build_default_feed()
    history = build_default_history()
    feed.start()
    try:
        yield
    finally:
        feed.stop()
        history.shutdown()
        table.close()
        build_default_feed.cache_clear()
        build_default_history.cache_clear()
        build_default_table.cache_clear()
        build_default_changes.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Biodigester Monitor",
        description="Live and historical sensor dashboard for a biodigester.",
        version="0.1.0",
        lifespan=lifespan,
    )
    static_dir = Path(__file__).resolve().parent.parent / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    app.include_router(router)
    app.include_router(web_router)
    return app


app = create_app()
