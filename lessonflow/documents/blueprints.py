"""Static lesson/challenge descriptions produced by the document parser."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from lessonflow.journey.challenge import Challenge
from lessonflow.journey.lesson import LessonDefinition
from lessonflow.kernel.commands import DisplayContent, KernelCommand, SubmitCode


class ContentBlock(BaseModel):
    kind: Literal["markdown", "code"]
    source: str

    def to_command(self) -> KernelCommand:
        if self.kind == "code":
            return DisplayContent(self.source, mime_type="text/x-python")
        return DisplayContent(self.source, mime_type="text/markdown")


class LessonBlueprint(BaseModel):
    """Lesson name and the code cells that run once when the lesson starts."""

    name: str
    setup: List[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    def to_definition(self, target_kernel: Optional[str] = None) -> LessonDefinition:
        """Create a definition; every call mints new command objects."""
        return LessonDefinition(
            name=self.name,
            setup=tuple(SubmitCode(code, target_kernel=target_kernel) for code in self.setup),
        )


class ChallengeBlueprint(BaseModel):
    name: str
    setup: List[str] = Field(default_factory=list)
    environment_setup: List[str] = Field(default_factory=list)
    contents: List[ContentBlock] = Field(default_factory=list)

    def to_challenge(self, target_kernel: Optional[str] = None) -> Challenge:
        return Challenge(
            self.name,
            setup=[SubmitCode(code, target_kernel=target_kernel) for code in self.setup],
            environment_setup=[SubmitCode(code, target_kernel=target_kernel) for code in self.environment_setup],
            contents=[block.to_command() for block in self.contents],
        )


class LessonDocument(BaseModel):
    lesson: LessonBlueprint
    challenges: List[ChallengeBlueprint]


__all__ = ["ChallengeBlueprint", "ContentBlock", "LessonBlueprint", "LessonDocument"]
