"""Lesson-wide progression state and the setup-command classifier."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional, Tuple, Union

from lessonflow.kernel.commands import KernelCommand

from .challenge import Challenge

LOGGER = logging.getLogger(__name__)

ChallengeLookup = Callable[[str], Union[Optional[Challenge], Awaitable[Optional[Challenge]]]]


class LessonMode(str, Enum):
    """Controls whether :meth:`Lesson.reset_challenge` discards learner state."""

    TEACHER = "teacher"
    STUDENT = "student"


@dataclass(frozen=True)
class LessonDefinition:
    name: str
    setup: Tuple[KernelCommand, ...] = ()


async def _resolve_nothing(name: str) -> Optional[Challenge]:
    return None


class Lesson:
    """The guided session: global setup plus the currently active challenge."""

    def __init__(
        self,
        name: str = "",
        *,
        setup: Iterable[KernelCommand] = (),
        mode: LessonMode = LessonMode.TEACHER,
    ) -> None:
        self.name = name
        self.setup: Tuple[KernelCommand, ...] = tuple(setup)
        self.mode = LessonMode(mode)
        self._current_challenge: Optional[Challenge] = None
        self._challenge_lookup: Callable[[str], Awaitable[Optional[Challenge]]] = _resolve_nothing

    @property
    def current_challenge(self) -> Optional[Challenge]:
        return self._current_challenge

    def apply_definition(self, definition: LessonDefinition) -> None:
        self.name = definition.name
        self.setup = tuple(definition.setup)

    async def start_challenge(self, target: Union[Challenge, str, None]) -> None:
        """Make ``target`` the active challenge.

        A name is resolved through the installed lookup; names that resolve to
        nothing leave the lesson untouched. Passing ``None`` clears the active
        challenge.
        """
        if isinstance(target, str):
            challenge = await self._challenge_lookup(target)
            if challenge is None:
                LOGGER.debug("No challenge named %r; staying on %r", target, self._name_of_current())
                return
            target = challenge

        self._current_challenge = target
        if target is not None:
            target.revealed = True
            LOGGER.info("Lesson %r: challenge %r is now active", self.name, target.name)

    def set_challenge_lookup(self, handler: ChallengeLookup) -> None:
        """Install a name resolver; plain and coroutine functions are both accepted."""

        async def lookup(name: str) -> Optional[Challenge]:
            result = handler(name)
            if inspect.isawaitable(result):
                result = await result
            return result

        self._challenge_lookup = lookup

    def is_setup_command(self, command: KernelCommand) -> bool:
        """True when ``command`` (or its parent) is one of the declared setup commands."""
        challenge = self._current_challenge
        candidates: Tuple[KernelCommand, ...] = tuple(self.setup or ())
        if challenge is not None:
            candidates = tuple(challenge.environment_setup or ()) + tuple(challenge.setup or ()) + candidates
        return any(command.is_derived_from(candidate) for candidate in candidates)

    def reset_challenge(self) -> None:
        if self.mode is LessonMode.STUDENT:
            LOGGER.debug("Student mode: keeping progress on %r", self._name_of_current())
            return
        self._current_challenge = Challenge()

    def clear(self) -> None:
        self.name = ""
        self._current_challenge = None

    def _name_of_current(self) -> str | None:
        return self._current_challenge.name if self._current_challenge is not None else None

    def __repr__(self) -> str:
        return f"Lesson(name={self.name!r}, mode={self.mode.value}, current={self._name_of_current()!r})"


__all__ = ["ChallengeLookup", "Lesson", "LessonDefinition", "LessonMode"]
