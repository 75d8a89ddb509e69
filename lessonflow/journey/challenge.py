"""A single lesson step: its commands, accumulated state, and evaluation."""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable, List, Optional, Sequence, Tuple, Union

from lessonflow.kernel.commands import KernelCommand
from lessonflow.kernel.events import KernelEvent

from .evaluation import ChallengeContext, ChallengeEvaluation, ChallengeSubmission, Rule, RuleCheck

if TYPE_CHECKING:  # pragma: no cover
    from .lesson import Lesson

LOGGER = logging.getLogger(__name__)

SubmissionHandler = Callable[[ChallengeContext], Union[Awaitable[None], None]]


class Challenge:
    """Step definition plus the learner's progress on it.

    ``setup`` runs once, the first time the challenge becomes active.
    ``contents`` and ``environment_setup`` are re-sent on every activation.
    The challenge never sends anything itself; the bootstrapper and the
    progression middleware drive it.
    """

    def __init__(
        self,
        name: str = "",
        *,
        setup: Iterable[KernelCommand] = (),
        environment_setup: Iterable[KernelCommand] = (),
        contents: Iterable[KernelCommand] = (),
        lesson: "Lesson | None" = None,
    ) -> None:
        self.name = name
        self.setup: Tuple[KernelCommand, ...] = tuple(setup)
        self.environment_setup: Tuple[KernelCommand, ...] = tuple(environment_setup)
        self.contents: Tuple[KernelCommand, ...] = tuple(contents)
        self.revealed = False
        self.current_evaluation: Optional[ChallengeEvaluation] = None
        self.rules: List[Rule] = []
        self.submissions: List[ChallengeSubmission] = []
        self.next_challenge: Optional[Challenge] = None
        self.lesson = lesson
        self._is_setup = False
        self._submission_handler: Optional[SubmissionHandler] = None

    @property
    def is_setup(self) -> bool:
        return self._is_setup

    @is_setup.setter
    def is_setup(self, value: bool) -> None:
        if self._is_setup and not value:
            raise ValueError(f"Challenge {self.name!r} has already been set up")
        self._is_setup = bool(value)

    def add_rule(self, check: RuleCheck, name: str | None = None) -> Rule:
        label = name or getattr(check, "__name__", "")
        if not label or label == "<lambda>":
            label = f"Rule {len(self.rules) + 1}"
        rule = Rule(check=check, name=label)
        self.rules.append(rule)
        return rule

    def clear_rules(self) -> None:
        self.rules.clear()

    def on_code_submitted(self, handler: SubmissionHandler) -> SubmissionHandler:
        """Install the handler run after every evaluation (usable as a decorator)."""
        self._submission_handler = handler
        return handler

    async def evaluate(self, code: str, events: Sequence[KernelEvent] = ()) -> ChallengeEvaluation:
        submission = ChallengeSubmission(code=code, events=tuple(events))
        results = [await rule.evaluate(submission) for rule in self.rules]
        evaluation = ChallengeEvaluation.aggregate(self.name, submission, results)
        self.current_evaluation = evaluation
        self.submissions.append(submission)
        LOGGER.debug("Challenge %r evaluated: %s", self.name, evaluation.outcome.value)

        if self._submission_handler is not None:
            outcome = self._submission_handler(ChallengeContext(self, evaluation, submission))
            if inspect.isawaitable(outcome):
                await outcome
        return evaluation

    def __repr__(self) -> str:
        return f"Challenge(name={self.name!r}, is_setup={self.is_setup}, revealed={self.revealed})"


__all__ = ["Challenge", "SubmissionHandler"]
