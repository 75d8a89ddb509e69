"""Kernel middleware that evaluates submissions and advances the lesson."""

from __future__ import annotations

import logging
from typing import Any, Callable

from lessonflow.journey.evaluation import ChallengeEvaluation
from lessonflow.journey.render import render_evaluation
from lessonflow.kernel.commands import KernelCommand, SubmitCode
from lessonflow.kernel.events import DisplayedValueProduced
from lessonflow.kernel.formatting import FormattedValue
from lessonflow.kernel.kernel import KernelInvocationContext, NextHandler, PythonKernel

from .bootstrap import initialize_challenge
from .context import LessonSession

LOGGER = logging.getLogger(__name__)

Renderer = Callable[[ChallengeEvaluation], Any]


class ProgressionMiddleware:
    """Wraps command execution with evaluation and challenge transitions.

    Setup commands go straight through. Every other submission is executed,
    evaluated against the challenge that was active when it arrived, and the
    rendered evaluation is published on the submission's context. If the
    evaluation moved the lesson to another challenge, that challenge is
    initialized before control returns to the kernel.
    """

    def __init__(self, session: LessonSession, *, renderer: Renderer = render_evaluation) -> None:
        self.session = session
        self.renderer = renderer

    async def __call__(
        self,
        command: KernelCommand,
        context: KernelInvocationContext,
        next_handler: NextHandler,
    ) -> None:
        if not isinstance(command, SubmitCode):
            await next_handler(command, context)
            return

        lesson = self.session.lesson
        if lesson.is_setup_command(command):
            LOGGER.debug("Setup command %s bypasses evaluation", command.token)
            await next_handler(command, context)
            return

        before = lesson.current_challenge
        first_event = len(context.events)
        await next_handler(command, context)
        if before is None:
            LOGGER.debug("No active challenge; %s was executed without evaluation", command.token)
            return

        events = list(context.events[first_event:])
        evaluation = await before.evaluate(command.code, events)
        view = self.renderer(evaluation)
        context.publish(
            DisplayedValueProduced(command, value=view, formatted_values=FormattedValue.from_object(view))
        )
        self.session.record(
            "evaluation",
            f"Submission evaluated against {before.name!r}",
            challenge=before.name,
            outcome=evaluation.outcome.value,
            command=command.token,
        )

        current = lesson.current_challenge
        if current is not before:
            LOGGER.info(
                "Advanced from %r to %r",
                before.name,
                current.name if current is not None else None,
            )
            self.session.record(
                "challenge_advanced",
                "Lesson progressed",
                previous=before.name,
                current=current.name if current is not None else None,
            )
            await initialize_challenge(self.session.kernel, current)
            if current is not None:
                self.session.record(
                    "challenge_initialized",
                    f"Challenge {current.name!r} initialized",
                    challenge=current.name,
                    is_setup=current.is_setup,
                )


def use_progressive_learning(kernel: PythonKernel, session: LessonSession) -> ProgressionMiddleware:
    """Install a :class:`ProgressionMiddleware` for ``session`` on ``kernel``."""
    middleware = ProgressionMiddleware(session)
    kernel.add_middleware(middleware)
    return middleware


__all__ = ["ProgressionMiddleware", "Renderer", "use_progressive_learning"]
