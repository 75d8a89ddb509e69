from __future__ import annotations

from typing import Iterable, List

import pytest

from lessonflow.core.config import EngineConfig
from lessonflow.journey import Challenge, Lesson, set_default_progression
from lessonflow.kernel import KernelCommand, KernelEvent, PythonKernel
from lessonflow.pipeline import LessonSession


class CommandRecorder:
    """Outermost middleware that remembers every command reaching the kernel."""

    def __init__(self) -> None:
        self.commands: List[KernelCommand] = []

    async def __call__(self, command, context, next_handler) -> None:
        self.commands.append(command)
        await next_handler(command, context)


class EventSink:
    def __init__(self) -> None:
        self.events: List[KernelEvent] = []

    def __call__(self, event: KernelEvent) -> None:
        self.events.append(event)

    def of_type(self, kind: type) -> List[KernelEvent]:
        return [event for event in self.events if isinstance(event, kind)]


def make_session(
    kernel: PythonKernel,
    challenges: Iterable[Challenge],
    *,
    lesson_setup: Iterable[KernelCommand] = (),
    config: EngineConfig | None = None,
    default_progression: bool = True,
) -> LessonSession:
    items = list(challenges)
    config = config or EngineConfig(bootstrap_imports=[])
    lesson = Lesson("Test lesson", setup=lesson_setup, mode=config.mode)
    for challenge in items:
        challenge.lesson = lesson
    if default_progression:
        set_default_progression(items)
    lesson.set_challenge_lookup(lambda name: next((c for c in items if c.name == name), None))
    return LessonSession(config=config, kernel=kernel, lesson=lesson, challenges=items)


@pytest.fixture()
def recorder() -> CommandRecorder:
    return CommandRecorder()


@pytest.fixture()
def sink() -> EventSink:
    return EventSink()


@pytest.fixture()
def kernel(recorder: CommandRecorder, sink: EventSink) -> PythonKernel:
    instance = PythonKernel()
    instance.add_middleware(recorder)
    instance.subscribe(sink)
    return instance
