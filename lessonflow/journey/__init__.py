"""Lesson and challenge model used by the progression pipeline."""

from .challenge import Challenge, SubmissionHandler
from .evaluation import (
    ChallengeContext,
    ChallengeEvaluation,
    ChallengeSubmission,
    Outcome,
    Rule,
    RuleContext,
    RuleEvaluation,
)
from .lesson import Lesson, LessonDefinition, LessonMode
from .progression import LESSON_COMPLETE_MESSAGE, advance_when_passed, set_default_progression
from .render import EvaluationView, render_evaluation

__all__ = [
    "Challenge",
    "ChallengeContext",
    "ChallengeEvaluation",
    "ChallengeSubmission",
    "EvaluationView",
    "LESSON_COMPLETE_MESSAGE",
    "Lesson",
    "LessonDefinition",
    "LessonMode",
    "Outcome",
    "Rule",
    "RuleContext",
    "RuleEvaluation",
    "SubmissionHandler",
    "advance_when_passed",
    "render_evaluation",
    "set_default_progression",
]
