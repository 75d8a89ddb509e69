"""Progression pipeline: session context, bootstrap, middleware, and directive."""

from __future__ import annotations

from .bootstrap import (
    bind_environment,
    bootstrap_lesson,
    build_session,
    initialize_challenge,
    initialize_lesson,
)
from .context import LessonSession
from .directive import START_LESSON, StartLessonDirective, use_start_lesson_directive
from .middleware import ProgressionMiddleware, use_progressive_learning

__all__ = [
    "LessonSession",
    "ProgressionMiddleware",
    "START_LESSON",
    "StartLessonDirective",
    "bind_environment",
    "bootstrap_lesson",
    "build_session",
    "initialize_challenge",
    "initialize_lesson",
    "use_progressive_learning",
    "use_start_lesson_directive",
]
