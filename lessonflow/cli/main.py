"""Command-line entry point: inspect, run, or play a lesson document."""

from __future__ import annotations

import asyncio
import logging
import shlex
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from lessonflow.core.config import EngineConfig, load_engine_config
from lessonflow.documents.parser import LessonDocumentError, load_lesson_document
from lessonflow.journey.lesson import LessonMode
from lessonflow.kernel.events import (
    CommandFailed,
    DisplayedValueProduced,
    KernelEvent,
    ReturnValueProduced,
    StandardOutputValueProduced,
)
from lessonflow.kernel.formatting import plain_text
from lessonflow.kernel.kernel import KernelCommandError, PythonKernel
from lessonflow.pipeline.context import LessonSession
from lessonflow.pipeline.directive import START_LESSON, StartLessonDirective, use_start_lesson_directive

app = typer.Typer(help="Run guided lessons in an in-process Python kernel.")
console = Console()

QUIT_COMMAND = ":quit"
RESET_COMMAND = ":reset"


def _load_config(config_path: Path | None, mode: str | None, log_level: str | None) -> EngineConfig:
    try:
        config = load_engine_config(config_path, env_file=Path.cwd() / ".env")
    except (FileNotFoundError, ValueError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc
    updates: dict[str, object] = {}
    if mode:
        try:
            updates["mode"] = LessonMode(mode.strip().lower())
        except ValueError as exc:
            raise typer.BadParameter(f"Unknown mode {mode!r}", param_hint="--mode") from exc
    if log_level:
        updates["log_level"] = log_level.upper()
    if updates:
        config = config.model_copy(update=updates)
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
    )
    return config


def _print_event(event: KernelEvent) -> None:
    if isinstance(event, StandardOutputValueProduced):
        console.print(event.text, end="", markup=False, highlight=False)
    elif isinstance(event, ReturnValueProduced):
        console.print(plain_text(event.formatted_values), markup=False)
    elif isinstance(event, DisplayedValueProduced):
        console.print(plain_text(event.formatted_values), markup=False)
    elif isinstance(event, CommandFailed):
        console.print(f"[red]error:[/red] {event.message}", highlight=False)


async def _start(kernel: PythonKernel, lesson: Path) -> None:
    await kernel.submit_code(f"{START_LESSON} {shlex.quote(str(lesson))}")


def _start_failure(exc: KernelCommandError) -> typer.Exit:
    cause = exc.__cause__ if exc.__cause__ is not None else exc
    typer.echo(f"Unable to start lesson: {cause}", err=True)
    return typer.Exit(code=2)


def _challenge_banner(session: LessonSession | None) -> None:
    if session is None or session.lesson.current_challenge is None:
        return
    console.rule(f"Challenge: {session.lesson.current_challenge.name or '(reset)'}")


@app.command()
def inspect(lesson: Path = typer.Argument(..., help="Lesson document (.ipynb or .md).")) -> None:
    """Show the challenges a lesson document defines."""

    try:
        document = load_lesson_document(lesson)
    except LessonDocumentError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc

    table = Table(title=f"{document.lesson.name} (lesson setup: {len(document.lesson.setup)})")
    table.add_column("#", justify="right")
    table.add_column("Challenge")
    table.add_column("Setup", justify="right")
    table.add_column("Environment", justify="right")
    table.add_column("Contents", justify="right")
    for index, challenge in enumerate(document.challenges, start=1):
        table.add_row(
            str(index),
            challenge.name,
            str(len(challenge.setup)),
            str(len(challenge.environment_setup)),
            str(len(challenge.contents)),
        )
    console.print(table)


async def _run_submissions(
    lesson: Path,
    submissions: List[Path],
    config: EngineConfig,
    quiet: bool,
) -> StartLessonDirective:
    kernel = PythonKernel(config.kernel_name)
    directive = use_start_lesson_directive(kernel, config)
    if not quiet:
        kernel.subscribe(_print_event)
    await _start(kernel, lesson)
    for path in submissions:
        _challenge_banner(directive.session)
        try:
            await kernel.submit_code(path.read_text(encoding="utf-8"))
        except KernelCommandError:
            # already reported through the CommandFailed event
            continue
    return directive


@app.command()
def run(
    lesson: Path = typer.Argument(..., help="Lesson document (.ipynb or .md)."),
    submissions: List[Path] = typer.Argument(..., help="Files submitted in order, one submission each."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Engine config YAML."),
    mode: Optional[str] = typer.Option(None, "--mode", help="teacher or student."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (default from config)."),
    quiet: bool = typer.Option(False, "--quiet", help="Only print the final summary."),
) -> None:
    """Submit files to a lesson non-interactively; exit 0 when every challenge passed."""

    config = _load_config(config_path, mode, log_level)
    missing = [str(path) for path in submissions if not path.is_file()]
    if missing:
        raise typer.BadParameter(f"Submission file(s) not found: {', '.join(missing)}")

    try:
        directive = asyncio.run(_run_submissions(lesson, submissions, config, quiet))
    except KernelCommandError as exc:
        raise _start_failure(exc) from exc

    session = directive.session
    if session is None:
        raise typer.Exit(code=2)
    passed = sum(
        1
        for challenge in session.challenges
        if challenge.current_evaluation is not None and challenge.current_evaluation.passed
    )
    typer.echo(f"{session.lesson.name}: {passed}/{len(session.challenges)} challenge(s) passed.")
    if not session.completed:
        raise typer.Exit(code=1)


async def _play(lesson: Path, config: EngineConfig) -> StartLessonDirective:
    kernel = PythonKernel(config.kernel_name)
    directive = use_start_lesson_directive(kernel, config)
    kernel.subscribe(_print_event)
    await _start(kernel, lesson)
    console.print(f"Submit code blocks terminated by an empty line. {RESET_COMMAND} resets, {QUIT_COMMAND} exits.")
    _challenge_banner(directive.session)

    buffer: List[str] = []

    async def submit() -> None:
        code = "\n".join(buffer)
        buffer.clear()
        before = directive.session.lesson.current_challenge if directive.session else None
        try:
            await kernel.submit_code(code)
        except KernelCommandError:
            return
        session = directive.session
        if session is not None and session.lesson.current_challenge is not before:
            _challenge_banner(session)

    while True:
        line = sys.stdin.readline()
        if line == "":
            if buffer:
                await submit()
            break
        text = line.rstrip("\n")
        command = text.strip()
        if not buffer and command == QUIT_COMMAND:
            break
        if not buffer and command == RESET_COMMAND:
            if directive.session is not None:
                directive.session.lesson.reset_challenge()
                _challenge_banner(directive.session)
            continue
        if not command:
            if buffer:
                await submit()
            continue
        buffer.append(text)
    return directive


@app.command()
def play(
    lesson: Path = typer.Argument(..., help="Lesson document (.ipynb or .md)."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Engine config YAML."),
    mode: Optional[str] = typer.Option(None, "--mode", help="teacher or student."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (default from config)."),
) -> None:
    """Work through a lesson interactively from standard input."""

    config = _load_config(config_path, mode, log_level)
    try:
        directive = asyncio.run(_play(lesson, config))
    except KernelCommandError as exc:
        raise _start_failure(exc) from exc
    if directive.session is not None and directive.session.completed:
        typer.echo("Lesson complete.")


if __name__ == "__main__":
    app()
