"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field

from predwatch.models import Alert, Entity


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"
    venues: list[str] = Field(default_factory=list)
    scheduler_running: bool = False


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. unknown_venue, invalid_id")


# --- Entities ---
class EntitiesResponse(BaseModel):
    venue: str
    entities: list[Entity]
    total: int


# --- Watchlist ---
class TrackRequest(BaseModel):
    id: str = Field(..., description="Polymarket slug/URL or Kalshi ticker")


class TrackResponse(BaseModel):
    venue: str
    id: str
    changed: bool = Field(..., description="False when the call was a no-op")
    tracked: list[str]


# --- Alerts ---
class AlertsResponse(BaseModel):
    alerts: list[Alert]
    total: int
