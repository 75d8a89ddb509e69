"""Session context shared by the bootstrapper and the progression middleware."""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from lessonflow.core.config import EngineConfig
from lessonflow.core.provenance import ProgressionEvent, ProgressionLog, ProgressionStage
from lessonflow.journey.challenge import Challenge
from lessonflow.journey.lesson import Lesson
from lessonflow.kernel.kernel import PythonKernel


class LessonSession(BaseModel):
    """Everything one running lesson needs, owned by whoever installs the pipeline."""

    config: EngineConfig
    kernel: PythonKernel
    lesson: Lesson
    challenges: List[Challenge] = Field(default_factory=list)
    provenance: Optional[ProgressionLog] = None
    source: Optional[Path] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def first_challenge(self) -> Challenge | None:
        return self.challenges[0] if self.challenges else None

    def find_challenge(self, name: str) -> Challenge | None:
        return next((challenge for challenge in self.challenges if challenge.name == name), None)

    @property
    def completed(self) -> bool:
        """True once every challenge has a passing evaluation."""
        return bool(self.challenges) and all(
            challenge.current_evaluation is not None and challenge.current_evaluation.passed
            for challenge in self.challenges
        )

    def record(self, stage: ProgressionStage, message: str, **payload: Any) -> None:
        if self.provenance is None:
            return
        self.provenance.append(
            ProgressionEvent(stage=stage, lesson=self.lesson.name, message=message, payload=payload)
        )


__all__ = ["LessonSession"]
