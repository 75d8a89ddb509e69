"""Commands accepted by the lesson kernel.

Commands compare by identity. The progression middleware recognises setup
work by checking whether an incoming command *is* one of the objects a lesson
or challenge declared, so two commands with the same payload are still
different commands.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple
from uuid import uuid4


def _new_token() -> str:
    return uuid4().hex


@dataclass(eq=False)
class KernelCommand:
    """Base class for every unit of work sent to a kernel."""

    parent: Optional["KernelCommand"] = field(default=None, kw_only=True, repr=False)
    token: str = field(default_factory=_new_token, kw_only=True)

    def is_derived_from(self, other: "KernelCommand") -> bool:
        """Return True when ``other`` is this command or its direct parent."""
        return self is other or (self.parent is not None and self.parent is other)

    @property
    def kind(self) -> str:
        return type(self).__name__


@dataclass(eq=False)
class SubmitCode(KernelCommand):
    """Source code to execute; the only kind the progression middleware evaluates."""

    code: str
    target_kernel: Optional[str] = None


@dataclass(eq=False)
class DisplayContent(KernelCommand):
    """Presentation material (markdown or code listing) shown to the learner."""

    content: str
    mime_type: str = "text/markdown"


@dataclass(eq=False)
class DirectiveCommand(KernelCommand):
    """A ``#!name args`` line split off a submission."""

    name: str
    arguments: Tuple[str, ...] = ()
    line: str = ""


__all__ = ["DirectiveCommand", "DisplayContent", "KernelCommand", "SubmitCode"]
