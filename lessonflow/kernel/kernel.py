"""In-process Python kernel with a middleware pipeline and ``#!`` directives."""

from __future__ import annotations

import argparse
import ast
import asyncio
import contextlib
import io
import logging
import shlex
import tokenize
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set

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

LOGGER = logging.getLogger(__name__)

NextHandler = Callable[[KernelCommand, "KernelInvocationContext"], Awaitable[None]]
Middleware = Callable[[KernelCommand, "KernelInvocationContext", NextHandler], Awaitable[None]]
DirectiveHandler = Callable[[argparse.Namespace, "KernelInvocationContext"], Awaitable[None]]
EventCallback = Callable[[KernelEvent], None]

_ACTIVE_CONTEXT: ContextVar[Optional["KernelInvocationContext"]] = ContextVar(
    "lessonflow_active_context", default=None
)


class KernelCommandError(RuntimeError):
    """Raised by :meth:`PythonKernel.send` when a command fails."""

    def __init__(self, command: KernelCommand, message: str) -> None:
        super().__init__(message)
        self.command = command


class DirectiveError(ValueError):
    """Unknown directive or invalid directive arguments."""


class _DirectiveArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise DirectiveError(f"{self.prog}: {message}")

    def exit(self, status: int = 0, message: str | None = None) -> None:  # type: ignore[override]
        raise DirectiveError(message or f"{self.prog} exited with status {status}")


def make_directive_parser(name: str, description: str = "") -> argparse.ArgumentParser:
    """Return an argument parser that raises :class:`DirectiveError` instead of exiting."""
    return _DirectiveArgumentParser(prog=name, description=description, add_help=False)


@dataclass(frozen=True)
class KernelDirective:
    name: str
    handler: DirectiveHandler
    parser: argparse.ArgumentParser | None = None
    description: str = ""

    def parse(self, arguments: Sequence[str]) -> argparse.Namespace:
        if self.parser is None:
            if arguments:
                raise DirectiveError(f"{self.name} does not take arguments")
            return argparse.Namespace()
        return self.parser.parse_args(list(arguments))


class KernelInvocationContext:
    """Collects the events produced while one command is processed."""

    def __init__(
        self,
        command: KernelCommand,
        kernel: "PythonKernel",
        *,
        parent: "KernelInvocationContext | None" = None,
    ) -> None:
        self.command = command
        self.kernel = kernel
        self.parent = parent
        self.events: List[KernelEvent] = []

    def publish(self, event: KernelEvent) -> None:
        self.events.append(event)
        self.kernel._broadcast(event)

    def fail(self, exception: BaseException | None = None, message: str | None = None) -> None:
        if self.failed:
            return
        text = message or (str(exception) if exception is not None else "Command failed")
        self.publish(CommandFailed(self.command, exception=exception, message=text))

    @property
    def failed(self) -> bool:
        return any(isinstance(event, CommandFailed) for event in self.events)


class PythonKernel:
    """Executes submissions against a persistent namespace.

    Top-level :meth:`send` calls are processed one at a time. Commands sent
    while another command is in flight in the same task (setup work issued by
    middleware or directive handlers) run inline instead of waiting.
    """

    def __init__(self, name: str = "python", *, namespace: Dict[str, Any] | None = None) -> None:
        self.name = name
        self.namespace: Dict[str, Any] = namespace if namespace is not None else {"__name__": "__lesson__"}
        self._middleware: List[Middleware] = []
        self._directives: Dict[str, KernelDirective] = {}
        self._subscribers: List[EventCallback] = []
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------ wiring

    def add_middleware(self, middleware: Middleware) -> None:
        self._middleware.append(middleware)

    def remove_middleware(self, middleware: Middleware) -> bool:
        if middleware in self._middleware:
            self._middleware.remove(middleware)
            return True
        return False

    @property
    def middleware(self) -> tuple[Middleware, ...]:
        return tuple(self._middleware)

    def add_directive(self, directive: KernelDirective) -> None:
        if directive.name in self._directives:
            raise ValueError(f"Directive {directive.name} already registered")
        self._directives[directive.name] = directive

    @property
    def directives(self) -> Dict[str, KernelDirective]:
        return dict(self._directives)

    def subscribe(self, callback: EventCallback) -> Callable[[], None]:
        """Receive every event published by any command sent to this kernel."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _broadcast(self, event: KernelEvent) -> None:
        for callback in list(self._subscribers):
            callback(event)

    # --------------------------------------------------------------- variables

    def set_variable(self, name: str, value: Any) -> None:
        if not name.isidentifier():
            raise ValueError(f"Invalid variable name: {name!r}")
        self.namespace[name] = value

    def get_variable(self, name: str, default: Any = None) -> Any:
        return self.namespace.get(name, default)

    # ---------------------------------------------------------------- sending

    async def submit_code(self, code: str) -> KernelInvocationContext:
        return await self.send(SubmitCode(code, target_kernel=self.name))

    async def send(self, command: KernelCommand) -> KernelInvocationContext:
        """Run ``command`` through the middleware pipeline and return its context.

        Failures are published as :class:`CommandFailed` and re-raised as
        :class:`KernelCommandError` with the original exception chained.
        """
        if _ACTIVE_CONTEXT.get() is not None:
            return await self._dispatch(command)
        async with self._lock:
            return await self._dispatch(command)

    async def _dispatch(self, command: KernelCommand) -> KernelInvocationContext:
        if isinstance(command, SubmitCode):
            parts = self._split_directives(command)
            if parts:
                context: KernelInvocationContext | None = None
                for part in parts:
                    context = await self._dispatch(part)
                assert context is not None
                return context

        LOGGER.debug("Dispatching %s %s", command.kind, command.token)
        context = KernelInvocationContext(command, self, parent=_ACTIVE_CONTEXT.get())
        reset_token = _ACTIVE_CONTEXT.set(context)
        try:
            await self._build_pipeline()(command, context)
        except KernelCommandError as exc:
            context.fail(exc)
            raise
        except Exception as exc:
            context.fail(exc, f"{type(exc).__name__}: {exc}")
            raise KernelCommandError(command, f"{type(exc).__name__}: {exc}") from exc
        finally:
            _ACTIVE_CONTEXT.reset(reset_token)
        context.publish(CommandSucceeded(command))
        return context

    def _build_pipeline(self) -> NextHandler:
        handler: NextHandler = self._handle_command
        for middleware in reversed(self._middleware):
            handler = _bind_middleware(middleware, handler)
        return handler

    @staticmethod
    def _directive_rows(code: str) -> Set[int]:
        """Return 1-based numbers of lines that hold a column-zero ``#!`` comment."""
        rows: Set[int] = set()
        try:
            for token in tokenize.generate_tokens(io.StringIO(code).readline):
                if token.type == tokenize.COMMENT and token.start[1] == 0 and token.string.startswith("#!"):
                    rows.add(token.start[0])
        except (tokenize.TokenError, SyntaxError):
            # rows found before the error stand; exec reports the broken part
            LOGGER.debug("Submission does not tokenize; splitting on %d directive line(s)", len(rows))
        if code.startswith("#!/"):
            rows.discard(1)
        return rows

    @classmethod
    def _split_directives(cls, command: SubmitCode) -> List[KernelCommand]:
        """Split ``#!`` lines off a submission; returns [] when there are none.

        Only real comment lines count. A ``#!`` inside a string literal or an
        indented block stays code, as does a leading ``#!/`` shebang.
        """
        rows = cls._directive_rows(command.code)
        if not rows:
            return []

        parts: List[KernelCommand] = []
        buffer: List[str] = []

        def flush() -> None:
            code = "\n".join(buffer)
            if code.strip():
                parts.append(SubmitCode(code, target_kernel=command.target_kernel, parent=command))
            buffer.clear()

        for number, line in enumerate(command.code.split("\n"), start=1):
            if number not in rows:
                buffer.append(line)
                continue
            flush()
            stripped = line.strip()
            try:
                tokens = shlex.split(stripped)
            except ValueError:
                tokens = stripped.split()
            parts.append(
                DirectiveCommand(
                    name=tokens[0],
                    arguments=tuple(tokens[1:]),
                    line=stripped,
                    parent=command,
                )
            )
        flush()
        return parts

    # --------------------------------------------------------------- handlers

    async def _handle_command(self, command: KernelCommand, context: KernelInvocationContext) -> None:
        if isinstance(command, SubmitCode):
            if command.target_kernel is not None and command.target_kernel != self.name:
                raise ValueError(f"Submission targets kernel {command.target_kernel!r}, not {self.name!r}")
            self._run_code(command, context)
        elif isinstance(command, DisplayContent):
            context.publish(
                DisplayedValueProduced(
                    command,
                    value=command.content,
                    formatted_values=[
                        FormattedValue(command.mime_type, command.content),
                        FormattedValue("text/plain", command.content),
                    ],
                )
            )
        elif isinstance(command, DirectiveCommand):
            await self._run_directive(command, context)
        else:
            raise TypeError(f"Unsupported command kind {command.kind}")

    def _run_code(self, command: SubmitCode, context: KernelInvocationContext) -> None:
        buffer = io.StringIO()
        try:
            with contextlib.redirect_stdout(buffer):
                value = self._execute(command.code)
        except Exception as exc:
            self._publish_stdout(buffer, command, context)
            context.fail(exc, f"{type(exc).__name__}: {exc}")
            raise
        self._publish_stdout(buffer, command, context)
        if value is not None:
            context.publish(
                ReturnValueProduced(command, value=value, formatted_values=FormattedValue.from_object(value))
            )

    def _execute(self, code: str) -> Any:
        tree = ast.parse(code, filename="<submission>", mode="exec")
        last_expression: ast.Expression | None = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            last_expression = ast.Expression(tree.body.pop().value)
        exec(compile(tree, "<submission>", "exec"), self.namespace)
        if last_expression is None:
            return None
        return eval(compile(last_expression, "<submission>", "eval"), self.namespace)

    @staticmethod
    def _publish_stdout(buffer: io.StringIO, command: KernelCommand, context: KernelInvocationContext) -> None:
        text = buffer.getvalue()
        if text:
            context.publish(StandardOutputValueProduced(command, text=text))

    async def _run_directive(self, command: DirectiveCommand, context: KernelInvocationContext) -> None:
        directive = self._directives.get(command.name)
        if directive is None:
            raise DirectiveError(f"Unknown directive {command.name}")
        arguments = directive.parse(command.arguments)
        await directive.handler(arguments, context)


def _bind_middleware(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
    async def invoke(command: KernelCommand, context: KernelInvocationContext) -> None:
        await middleware(command, context, next_handler)

    return invoke


__all__ = [
    "DirectiveError",
    "KernelCommandError",
    "KernelDirective",
    "KernelInvocationContext",
    "Middleware",
    "NextHandler",
    "PythonKernel",
    "make_directive_parser",
]
