"""FastAPI backend over a running tracker service."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from predwatch.api.schemas import (
    AlertsResponse,
    EntitiesResponse,
    ErrorResponse,
    HealthResponse,
    TrackRequest,
    TrackResponse,
)
from predwatch.config import Settings
from predwatch.service import TrackerService
from predwatch.tracking.engine import UnknownVenueError
from predwatch.tracking.selectors import search_by_title, top_by_volume


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


def create_app(service: TrackerService) -> FastAPI:
    """Build the API around `service`; the app lifespan starts and stops it."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await service.start()
        yield
        await service.stop()

    app = FastAPI(title="predwatch API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    tracker = service.tracker

    @app.exception_handler(UnknownVenueError)
    async def unknown_venue(request: Request, exc: UnknownVenueError) -> JSONResponse:
        return _error_json("unknown_venue", f"Unknown venue: {exc.args[0]}")

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(
            status="ok", venues=tracker.venues, scheduler_running=service.scheduler.started
        )

    @app.get("/venues/{venue}/trending", response_model=EntitiesResponse)
    def trending(
        venue: str,
        top: int | None = Query(None, ge=1, le=100, description="Top N by volume"),
        q: str | None = Query(None, description="Case-insensitive title filter"),
        limit: int = Query(50, ge=1, le=500),
    ) -> EntitiesResponse:
        entities = tracker.trending_snapshot(venue)
        if q is not None:
            entities = search_by_title(entities, q, limit=limit)
        elif top is not None:
            entities = top_by_volume(entities, top)
        return EntitiesResponse(venue=venue, entities=entities, total=len(entities))

    @app.get("/venues/{venue}/tracked", response_model=EntitiesResponse)
    def tracked(venue: str) -> EntitiesResponse:
        entities = tracker.tracked_snapshot(venue)
        return EntitiesResponse(venue=venue, entities=entities, total=len(entities))

    # Mutations are async so they run on the event loop that owns the scheduler.
    @app.post(
        "/venues/{venue}/tracked",
        response_model=TrackResponse,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    )
    async def add_tracked(venue: str, body: TrackRequest):
        entity_id = tracker.connector(venue).normalize_id(body.id)
        if not entity_id:
            return _error_json("invalid_id", "Empty id after normalization", status_code=400)
        changed = tracker.add_tracked(venue, body.id)
        return TrackResponse(venue=venue, id=entity_id, changed=changed, tracked=tracker.tracked_ids(venue))

    @app.delete(
        "/venues/{venue}/tracked/{entity_id:path}",
        response_model=TrackResponse,
        responses={404: {"model": ErrorResponse}},
    )
    async def remove_tracked(venue: str, entity_id: str):
        normalized = tracker.connector(venue).normalize_id(entity_id)
        changed = tracker.remove_tracked(venue, entity_id)
        if not changed:
            return _error_json("not_tracked", f"{normalized} is not tracked on {venue}")
        return TrackResponse(venue=venue, id=normalized, changed=True, tracked=tracker.tracked_ids(venue))

    @app.get("/alerts", response_model=AlertsResponse)
    def alerts() -> AlertsResponse:
        active = sorted(tracker.alerts_snapshot().values(), key=lambda a: a.timestamp, reverse=True)
        return AlertsResponse(alerts=active, total=len(active))

    return app


def run_api(settings: Settings, host: str = "127.0.0.1", port: int = 8000) -> None:
    import uvicorn

    app = create_app(TrackerService.from_settings(settings))
    uvicorn.run(app, host=host, port=port, reload=False)
