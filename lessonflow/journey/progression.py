"""Default progression: advance to the next challenge once a submission passes."""

from __future__ import annotations

from typing import Sequence

from .challenge import Challenge
from .evaluation import ChallengeContext

LESSON_COMPLETE_MESSAGE = "Congratulations, you have completed the lesson."


def set_default_progression(challenges: Sequence[Challenge]) -> None:
    """Link ``challenges`` in order and advance on every passing evaluation."""
    ordered = list(challenges)
    for index, challenge in enumerate(ordered):
        challenge.next_challenge = ordered[index + 1] if index + 1 < len(ordered) else None
        challenge.on_code_submitted(advance_when_passed)


async def advance_when_passed(context: ChallengeContext) -> None:
    if not context.passed:
        return
    if context.challenge.next_challenge is None:
        context.set_message(LESSON_COMPLETE_MESSAGE)
        return
    await context.start_next_challenge()


__all__ = ["LESSON_COMPLETE_MESSAGE", "advance_when_passed", "set_default_progression"]
