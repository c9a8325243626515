"""Alert - short-lived notice that an entity's top outcome moved."""

from __future__ import annotations

from pydantic import BaseModel


class Alert(BaseModel):
    id: str
    message: str
    timestamp: int  # ms epoch
    venue: str | None = None
    move: float = 0.0  # absolute probability move that triggered it
