from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.dependencies import (
    get_app_settings,
    get_classifier,
    get_feed,
    get_history,
    get_transformer,
    resolve_window,
)
from app.plotting import project
from app.views import build_charts, build_latest_response
from services.charts import ChartTransformer, TimeWindow
from services.classifier import AlarmClassifier
from services.display import resolve_timezone
from services.feed import LiveReadingFeed
from services.history import HistoryService
from settings import Settings


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


router = APIRouter(include_in_schema=False)


@router.get("/", name="ui_dashboard", response_class=HTMLResponse)
async def ui_dashboard(
    request: Request,
    feed: LiveReadingFeed = Depends(get_feed),
    classifier: AlarmClassifier = Depends(get_classifier),
    settings: Settings = Depends(get_app_settings),
) -> HTMLResponse:
    latest = build_latest_response(
        feed.snapshot(),
        classifier,
        resolve_timezone(settings.display_timezone),
    )
    return templates.TemplateResponse(
        request,
        "ui/dashboard.html",
        {
            "latest": latest,
            # Reload quickly while the first query is pending.
            "refresh_seconds": 1 if latest.loading else max(1, round(settings.poll_interval)),
        },
    )


@router.get("/charts", name="ui_charts", response_class=HTMLResponse)
def ui_charts(
    request: Request,
    window: Optional[TimeWindow] = Query(default=None),
    history: HistoryService = Depends(get_history),
    transformer: ChartTransformer = Depends(get_transformer),
    settings: Settings = Depends(get_app_settings),
) -> HTMLResponse:
    selected = resolve_window(window, settings)
    snapshot = history.show(selected, timeout=settings.store_timeout * 2)
    charts = build_charts(snapshot, transformer)
    return templates.TemplateResponse(
        request,
        "ui/charts.html",
        {
            "snapshot": snapshot,
            "windows": list(TimeWindow),
            "charts": [(chart, project(chart)) for chart in charts],
        },
    )
