"""Append-only JSONL record of how a lesson progressed."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field

ProgressionStage = Literal["lesson_started", "evaluation", "challenge_advanced", "challenge_initialized"]


class ProgressionEvent(BaseModel):
    """One line of the progression log."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    stage: ProgressionStage
    lesson: str = Field(default="", description="Name of the lesson the event belongs to.")
    message: str
    payload: Dict[str, Any] = Field(default_factory=dict)


class ProgressionLog:
    """Appends :class:`ProgressionEvent` lines to a file, creating its directory."""

    def __init__(self, path: Path):
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def append(self, event: ProgressionEvent) -> None:
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(event.model_dump_json() + "\n")


__all__ = ["ProgressionEvent", "ProgressionLog", "ProgressionStage"]
