"""Lesson document parsing (notebooks and markdown)."""

from .blueprints import ChallengeBlueprint, ContentBlock, LessonBlueprint, LessonDocument
from .parser import LessonDocumentError, load_lesson_document, parse_lesson_document

__all__ = [
    "ChallengeBlueprint",
    "ContentBlock",
    "LessonBlueprint",
    "LessonDocument",
    "LessonDocumentError",
    "load_lesson_document",
    "parse_lesson_document",
]
