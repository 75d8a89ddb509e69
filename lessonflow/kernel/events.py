"""Events published while a kernel processes a command."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List

from .commands import KernelCommand
from .formatting import FormattedValue


@dataclass(eq=False)
class KernelEvent:
    command: KernelCommand


@dataclass(eq=False)
class CommandSucceeded(KernelEvent):
    pass


@dataclass(eq=False)
class CommandFailed(KernelEvent):
    exception: BaseException | None = None
    message: str = ""


@dataclass(eq=False)
class StandardOutputValueProduced(KernelEvent):
    text: str = ""


@dataclass(eq=False)
class ReturnValueProduced(KernelEvent):
    value: Any = None
    formatted_values: List[FormattedValue] = field(default_factory=list)


@dataclass(eq=False)
class DisplayedValueProduced(KernelEvent):
    value: Any = None
    formatted_values: List[FormattedValue] = field(default_factory=list)


__all__ = [
    "CommandFailed",
    "CommandSucceeded",
    "DisplayedValueProduced",
    "KernelEvent",
    "ReturnValueProduced",
    "StandardOutputValueProduced",
]
