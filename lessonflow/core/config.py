"""
Typed configuration for the lesson engine.

Values come from an optional YAML file, then from environment variables
(optionally seeded from a ``.env`` file). Everything has a default so the
engine runs without any configuration at all.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from lessonflow.journey.lesson import LessonMode

ENV_MODE = "LESSONFLOW_MODE"
ENV_PROVENANCE = "LESSONFLOW_PROVENANCE"
ENV_LOG_LEVEL = "LESSONFLOW_LOG_LEVEL"

DEFAULT_BOOTSTRAP_IMPORTS: List[str] = [
    "from lessonflow.journey import Outcome, RuleContext",
]


class EngineConfig(BaseModel):
    """Settings shared by the bootstrapper, the directive, and the CLI."""

    model_config = ConfigDict(extra="forbid")

    mode: LessonMode = LessonMode.TEACHER
    kernel_name: str = Field(default="python", min_length=1)
    lesson_variable: str = Field(default="Lesson", description="Name the lesson is bound to inside the kernel.")
    bootstrap_imports: List[str] = Field(default_factory=lambda: list(DEFAULT_BOOTSTRAP_IMPORTS))
    default_progression: bool = Field(default=True, description="Advance to the next challenge on a passing evaluation.")
    provenance_path: Optional[Path] = None
    log_level: str = "WARNING"

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("lesson_variable")
    @classmethod
    def ensure_identifier(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(f"lesson_variable must be a Python identifier, got {value!r}")
        return value

    @field_validator("provenance_path", mode="before")
    @classmethod
    def coerce_path(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        return Path(value).expanduser().resolve()

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_level(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value


def read_yaml_file(path: Path) -> Dict[str, Any]:
    """Load a YAML file and return a dictionary."""
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at root of {path}, received {type(data)}")
    return data


def _environment_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if os.getenv(ENV_MODE):
        overrides["mode"] = os.environ[ENV_MODE]
    if os.getenv(ENV_PROVENANCE):
        overrides["provenance_path"] = os.environ[ENV_PROVENANCE]
    if os.getenv(ENV_LOG_LEVEL):
        overrides["log_level"] = os.environ[ENV_LOG_LEVEL]
    return overrides


def load_engine_config(path: Path | None = None, *, env_file: Path | None = None) -> EngineConfig:
    """Build an :class:`EngineConfig` from YAML plus environment overrides."""
    if env_file is not None:
        load_dotenv(env_file)
    data: Dict[str, Any] = {}
    if path is not None:
        path = path.expanduser().resolve()
        data = read_yaml_file(path)
        section = data.get("lessonflow")
        if isinstance(section, dict):
            data = section
    data.update(_environment_overrides())
    try:
        return EngineConfig.model_validate(data)
    except ValidationError as exc:
        source = path if path is not None else "environment"
        raise ValueError(f"Invalid engine config in {source}: {exc}") from exc


__all__ = ["DEFAULT_BOOTSTRAP_IMPORTS", "EngineConfig", "load_engine_config", "read_yaml_file"]
