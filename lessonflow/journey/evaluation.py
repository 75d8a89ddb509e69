"""Rule-based evaluation primitives used by challenges.

A challenge owns an ordered list of :class:`Rule` objects. Each rule receives a
:class:`RuleContext` describing the submission (source, captured stdout, the
value of the last expression, raw kernel events) and either returns a boolean
or records an explicit outcome through ``succeed``/``partial``/``fail``.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional, Sequence, Tuple, Union

from lessonflow.kernel.events import (
    CommandFailed,
    KernelEvent,
    ReturnValueProduced,
    StandardOutputValueProduced,
)

if TYPE_CHECKING:  # pragma: no cover
    from .challenge import Challenge
    from .lesson import Lesson


class Outcome(str, Enum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILURE = "failure"


@dataclass(slots=True)
class ChallengeSubmission:
    """One piece of learner work plus the events its execution produced."""

    code: str
    events: Tuple[KernelEvent, ...] = ()
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def stdout(self) -> str:
        return "".join(event.text for event in self.events if isinstance(event, StandardOutputValueProduced))

    @property
    def return_value(self) -> Any:
        values = [event.value for event in self.events if isinstance(event, ReturnValueProduced)]
        return values[-1] if values else None

    @property
    def failed(self) -> bool:
        return any(isinstance(event, CommandFailed) for event in self.events)


@dataclass(slots=True)
class RuleEvaluation:
    name: str
    outcome: Outcome
    reason: str = ""
    hint: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.outcome is Outcome.SUCCESS


class RuleContext:
    """View of a submission handed to a rule check."""

    def __init__(self, submission: ChallengeSubmission, rule_name: str) -> None:
        self.submission = submission
        self.rule_name = rule_name
        self._outcome: Outcome | None = None
        self._reason = ""
        self._hint: str | None = None

    @property
    def code(self) -> str:
        return self.submission.code

    @property
    def stdout(self) -> str:
        return self.submission.stdout

    @property
    def return_value(self) -> Any:
        return self.submission.return_value

    @property
    def events(self) -> Tuple[KernelEvent, ...]:
        return self.submission.events

    def succeed(self, reason: str = "") -> None:
        self._record(Outcome.SUCCESS, reason, None)

    def partial(self, reason: str = "", hint: str | None = None) -> None:
        self._record(Outcome.PARTIAL_SUCCESS, reason, hint)

    def fail(self, reason: str = "", hint: str | None = None) -> None:
        self._record(Outcome.FAILURE, reason, hint)

    def _record(self, outcome: Outcome, reason: str, hint: str | None) -> None:
        self._outcome = outcome
        self._reason = reason
        self._hint = hint

    def to_evaluation(self, returned: Any) -> RuleEvaluation:
        outcome = self._outcome
        if outcome is None:
            # bare return: False fails, anything else passes
            outcome = Outcome.FAILURE if returned is False else Outcome.SUCCESS
        return RuleEvaluation(name=self.rule_name, outcome=outcome, reason=self._reason, hint=self._hint)


RuleCheck = Callable[[RuleContext], Union[bool, None, Awaitable[Union[bool, None]]]]


@dataclass
class Rule:
    check: RuleCheck
    name: str

    async def evaluate(self, submission: ChallengeSubmission) -> RuleEvaluation:
        context = RuleContext(submission, self.name)
        returned = self.check(context)
        if inspect.isawaitable(returned):
            returned = await returned
        return context.to_evaluation(returned)


@dataclass
class ChallengeEvaluation:
    """Outcome of evaluating one submission against a challenge."""

    challenge_name: str
    outcome: Outcome
    reason: str = ""
    rule_evaluations: List[RuleEvaluation] = field(default_factory=list)
    hint: Optional[str] = None
    message: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @classmethod
    def aggregate(
        cls,
        challenge_name: str,
        submission: ChallengeSubmission,
        rule_evaluations: Sequence[RuleEvaluation],
    ) -> "ChallengeEvaluation":
        results = list(rule_evaluations)
        if not results:
            if submission.failed:
                return cls(challenge_name, Outcome.FAILURE, "The submission raised an error.")
            return cls(challenge_name, Outcome.SUCCESS, "Submission accepted.")

        passed = sum(1 for item in results if item.outcome is Outcome.SUCCESS)
        partial = sum(1 for item in results if item.outcome is Outcome.PARTIAL_SUCCESS)
        hint = next((item.hint for item in results if not item.passed and item.hint), None)
        if passed == len(results):
            return cls(challenge_name, Outcome.SUCCESS, "All rules passed.", results)
        if passed or partial:
            reason = f"{passed} of {len(results)} rules passed."
            return cls(challenge_name, Outcome.PARTIAL_SUCCESS, reason, results, hint=hint)
        return cls(challenge_name, Outcome.FAILURE, "No rules passed.", results, hint=hint)


class ChallengeContext:
    """Handed to ``on_code_submitted`` handlers; the hook for lesson progression."""

    def __init__(
        self,
        challenge: "Challenge",
        evaluation: ChallengeEvaluation,
        submission: ChallengeSubmission,
    ) -> None:
        self.challenge = challenge
        self.evaluation = evaluation
        self.submission = submission

    @property
    def lesson(self) -> "Lesson | None":
        return self.challenge.lesson

    @property
    def passed(self) -> bool:
        return self.evaluation.passed

    def set_message(self, message: str) -> None:
        self.evaluation.message = message

    async def start_next_challenge(self) -> bool:
        """Advance to the challenge linked after this one; False when there is none."""
        upcoming = self.challenge.next_challenge
        if upcoming is None or self.lesson is None:
            return False
        await self.lesson.start_challenge(upcoming)
        return True

    async def start_challenge(self, name: str) -> None:
        if self.lesson is not None:
            await self.lesson.start_challenge(name)


__all__ = [
    "ChallengeContext",
    "ChallengeEvaluation",
    "ChallengeSubmission",
    "Outcome",
    "Rule",
    "RuleCheck",
    "RuleContext",
    "RuleEvaluation",
]
