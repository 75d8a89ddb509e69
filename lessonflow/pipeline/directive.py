"""The ``#!start-lesson`` kernel directive."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from lessonflow.core.config import EngineConfig
from lessonflow.documents.parser import load_lesson_document
from lessonflow.journey.lesson import LessonMode
from lessonflow.kernel.events import DisplayedValueProduced
from lessonflow.kernel.formatting import FormattedValue
from lessonflow.kernel.kernel import KernelDirective, KernelInvocationContext, PythonKernel, make_directive_parser

from .bootstrap import bootstrap_lesson, build_session
from .context import LessonSession
from .middleware import ProgressionMiddleware, use_progressive_learning

LOGGER = logging.getLogger(__name__)

START_LESSON = "#!start-lesson"


class StartLessonDirective:
    """Loads a lesson document into a kernel and installs progression.

    Reading and parsing happen before anything on the kernel changes, so a
    bad document leaves the kernel exactly as it was.
    """

    def __init__(self, kernel: PythonKernel, config: EngineConfig | None = None) -> None:
        self.kernel = kernel
        self.config = config or EngineConfig()
        self.session: LessonSession | None = None
        self.middleware: ProgressionMiddleware | None = None

    def build_parser(self) -> argparse.ArgumentParser:
        parser = make_directive_parser(START_LESSON, "Start a guided lesson from a notebook or markdown file.")
        parser.add_argument("file", help="Path to the lesson document (.ipynb or .md).")
        parser.add_argument(
            "--mode",
            choices=[mode.value for mode in LessonMode],
            default=None,
            help="Override the configured lesson mode.",
        )
        return parser

    def register(self) -> KernelDirective:
        directive = KernelDirective(
            name=START_LESSON,
            handler=self.handle,
            parser=self.build_parser(),
            description="Start a guided lesson.",
        )
        self.kernel.add_directive(directive)
        return directive

    async def handle(self, arguments: argparse.Namespace, context: KernelInvocationContext) -> None:
        path = Path(arguments.file).expanduser().resolve()
        document = load_lesson_document(path)

        config = self.config
        if arguments.mode:
            config = config.model_copy(update={"mode": LessonMode(arguments.mode)})
        session = build_session(document, kernel=self.kernel, config=config, source=path)

        self._retire_current_session()
        await bootstrap_lesson(session)
        self.middleware = use_progressive_learning(self.kernel, session)
        self.session = session

        message = f"Lesson {session.lesson.name!r} started ({len(session.challenges)} challenges)."
        context.publish(
            DisplayedValueProduced(
                context.command,
                value=message,
                formatted_values=FormattedValue.from_object(message),
            )
        )

    def _retire_current_session(self) -> None:
        if self.middleware is None or self.session is None:
            return
        LOGGER.warning("Replacing running lesson %r", self.session.lesson.name)
        self.kernel.remove_middleware(self.middleware)
        self.session.lesson.clear()
        self.middleware = None
        self.session = None


def use_start_lesson_directive(kernel: PythonKernel, config: EngineConfig | None = None) -> StartLessonDirective:
    """Register ``#!start-lesson`` on ``kernel`` and return the directive state."""
    directive = StartLessonDirective(kernel, config)
    directive.register()
    return directive


__all__ = ["START_LESSON", "StartLessonDirective", "use_start_lesson_directive"]
