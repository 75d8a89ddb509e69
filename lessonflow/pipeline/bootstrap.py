"""Bootstrap helpers: build a lesson session and run its setup commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from lessonflow.core.config import EngineConfig
from lessonflow.core.provenance import ProgressionLog
from lessonflow.documents.blueprints import LessonDocument
from lessonflow.journey.challenge import Challenge
from lessonflow.journey.lesson import Lesson
from lessonflow.journey.progression import set_default_progression
from lessonflow.kernel.commands import KernelCommand
from lessonflow.kernel.kernel import PythonKernel

from .context import LessonSession

LOGGER = logging.getLogger(__name__)


async def send_all(kernel: PythonKernel, commands: Iterable[KernelCommand]) -> None:
    """Send ``commands`` one after another, awaiting each."""
    for command in commands:
        await kernel.send(command)


async def initialize_challenge(kernel: PythonKernel, challenge: Challenge | None) -> None:
    """Run one-time setup (first activation only), then contents and environment setup.

    ``is_setup`` flips only after the whole setup sequence succeeded, so a
    failure part-way leaves it False and the next activation re-sends the
    entire sequence.
    """
    if challenge is None:
        return

    if not challenge.is_setup:
        LOGGER.debug("Running %d setup command(s) for %r", len(challenge.setup), challenge.name)
        await send_all(kernel, challenge.setup)
        challenge.is_setup = True

    await send_all(kernel, challenge.contents)
    await send_all(kernel, challenge.environment_setup)


async def initialize_lesson(session: LessonSession) -> None:
    await send_all(session.kernel, session.lesson.setup)


async def bind_environment(session: LessonSession) -> None:
    """Import the configured helpers and expose the lesson inside the kernel."""
    for code in session.config.bootstrap_imports:
        await session.kernel.submit_code(code)
    session.kernel.set_variable(session.config.lesson_variable, session.lesson)


async def bootstrap_lesson(session: LessonSession) -> None:
    """Lesson setup, first challenge, environment binding, first challenge setup."""
    lesson = session.lesson
    await initialize_lesson(session)
    await lesson.start_challenge(session.first_challenge)
    await bind_environment(session)
    await initialize_challenge(session.kernel, lesson.current_challenge)

    LOGGER.info("Lesson %r started with %d challenge(s)", lesson.name, len(session.challenges))
    session.record(
        "lesson_started",
        f"Lesson {lesson.name!r} started",
        challenges=[challenge.name for challenge in session.challenges],
        mode=lesson.mode.value,
    )


def build_session(
    document: LessonDocument,
    *,
    kernel: PythonKernel,
    config: EngineConfig | None = None,
    source: Path | None = None,
) -> LessonSession:
    """Materialize challenges and the lesson from a parsed document."""
    config = config or EngineConfig()
    challenges = [blueprint.to_challenge(kernel.name) for blueprint in document.challenges]
    if config.default_progression:
        set_default_progression(challenges)

    lesson = Lesson(mode=config.mode)
    lesson.apply_definition(document.lesson.to_definition(kernel.name))
    for challenge in challenges:
        challenge.lesson = lesson

    def lookup(name: str) -> Challenge | None:
        return next((challenge for challenge in challenges if challenge.name == name), None)

    lesson.set_challenge_lookup(lookup)

    provenance = ProgressionLog(config.provenance_path) if config.provenance_path else None
    return LessonSession(
        config=config,
        kernel=kernel,
        lesson=lesson,
        challenges=challenges,
        provenance=provenance,
        source=source,
    )


__all__ = [
    "bind_environment",
    "bootstrap_lesson",
    "build_session",
    "initialize_challenge",
    "initialize_lesson",
    "send_all",
]
