"""Execution substrate: commands, events, and the in-process Python kernel."""

from .commands import DirectiveCommand, DisplayContent, KernelCommand, SubmitCode
from .events import (
    CommandFailed,
    CommandSucceeded,
    DisplayedValueProduced,
    KernelEvent,
    ReturnValueProduced,
    StandardOutputValueProduced,
)
from .formatting import FormattedValue
from .kernel import (
    DirectiveError,
    KernelCommandError,
    KernelDirective,
    KernelInvocationContext,
    Middleware,
    NextHandler,
    PythonKernel,
    make_directive_parser,
)

__all__ = [
    "CommandFailed",
    "CommandSucceeded",
    "DirectiveCommand",
    "DirectiveError",
    "DisplayContent",
    "DisplayedValueProduced",
    "FormattedValue",
    "KernelCommand",
    "KernelCommandError",
    "KernelDirective",
    "KernelEvent",
    "KernelInvocationContext",
    "Middleware",
    "NextHandler",
    "PythonKernel",
    "ReturnValueProduced",
    "StandardOutputValueProduced",
    "SubmitCode",
    "make_directive_parser",
]
