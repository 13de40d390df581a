# Use postponed evaluation of annotations so type hints stay as strings at runtime.
from __future__ import annotations

from typing import Optional

# `FastAPI` exposes the analytics as local HTTP endpoints for a chart/map front end.
from fastapi import FastAPI
from fastapi.responses import RedirectResponse

# API routes are defined in a separate module to keep the app factory small and testable.
from cyclestats.api.routes import router

# `RideAnalyticsService` owns the stored rides and the station snapshot and shapes analytics payloads.
from cyclestats.api.service import RideAnalyticsService

# `AppConfig` is the typed config model so we can avoid globals and magic strings.
from cyclestats.config.models import AppConfig

# Central logging configuration keeps scripts and the API on the same format/level.
from cyclestats.utils.logging import configure_logging


# This app factory builds the FastAPI application from a typed config.
# Tests pass their own `service` (with a fake station source and a temp ride store).
def create_app(config: AppConfig, *, service: Optional[RideAnalyticsService] = None) -> FastAPI:
    # Pitfall: `logging.basicConfig(...)` is a no-op if handlers already exist (common in tests),
    # so treat this as best-effort for local use.
    configure_logging(config.logging)

    app = FastAPI(title=config.app.name)

    # Store the service on `app.state` so route handlers can reach it through `Depends`.
    app.state.analytics_service = service or RideAnalyticsService(config)

    app.include_router(router)

    @app.get("/", include_in_schema=False)
    def index() -> RedirectResponse:
        return RedirectResponse(url="/docs", status_code=302)

    return app
