"""Parse lesson documents (Jupyter notebooks or markdown) into blueprints.

Structure is expressed through marker headings, at any heading level::

    # [Lesson] Python basics
    ## [Setup]            <- code here runs once when the lesson starts
    # [Challenge] Variables
    ## [Setup]            <- runs the first time the challenge is reached
    ## [EnvironmentSetup] <- runs every time the challenge is reached
    ## [Contents]         <- markdown/code shown to the learner (the default)
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from .blueprints import ChallengeBlueprint, ContentBlock, LessonBlueprint, LessonDocument

LOGGER = logging.getLogger(__name__)

_ZERO_WIDTH_PREFIXES = "\ufeff\u200b\u200c\u200d\u2060\u202a\u202b\u202c\u202d\u202e"
_MARKER_PATTERN = re.compile(
    r"^\[(?P<marker>lesson|challenge|setup|environment\s*setup|contents)\]\s*(?P<title>.*)$",
    re.IGNORECASE,
)
_FENCE_PATTERN = re.compile(r"^\s*```\s*(?P<lang>[\w+-]*)\s*$")
_CODE_LANGUAGES = {"", "python", "py", "python3", "ipython"}

SETUP = "setup"
ENVIRONMENT_SETUP = "environment_setup"
CONTENTS = "contents"


class LessonDocumentError(ValueError):
    """Raised when a lesson document cannot be read or is malformed."""


@dataclass(slots=True)
class Cell:
    kind: str
    source: str


def _strip_zero_width_prefix(text: str) -> str:
    """Remove zero-width and BOM markers that break heading detection."""

    return text.lstrip(_ZERO_WIDTH_PREFIXES)


def _extract_heading(line: str) -> str | None:
    stripped = _strip_zero_width_prefix(line.strip())
    if not stripped.startswith("#"):
        return None
    heading = _strip_zero_width_prefix(stripped.lstrip("# ").strip())
    return heading or None


def _match_marker(line: str) -> tuple[str, str] | None:
    heading = _extract_heading(line)
    if heading is None:
        return None
    match = _MARKER_PATTERN.match(heading)
    if match is None:
        return None
    marker = re.sub(r"\s+", "", match.group("marker").lower())
    if marker == "environmentsetup":
        marker = ENVIRONMENT_SETUP
    return marker, match.group("title").strip()


def notebook_cells(text: str) -> List[Cell]:
    """Extract markdown and code cells from nbformat-4 JSON."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LessonDocumentError(f"Notebook is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("cells"), list):
        raise LessonDocumentError("Notebook must be a mapping with a 'cells' list")

    cells: List[Cell] = []
    for raw in payload["cells"]:
        if not isinstance(raw, dict):
            raise LessonDocumentError("Notebook cells must be mappings")
        kind = raw.get("cell_type")
        if kind not in {"markdown", "code"}:
            continue
        source: Any = raw.get("source", "")
        if isinstance(source, list):
            source = "".join(str(part) for part in source)
        cells.append(Cell(kind=kind, source=str(source)))
    return cells


def markdown_cells(text: str) -> List[Cell]:
    """Split markdown into prose cells and fenced Python code cells."""
    cells: List[Cell] = []
    prose: List[str] = []
    code: List[str] = []
    fence_lang: Optional[str] = None
    in_foreign_fence = False

    def flush_prose() -> None:
        if "\n".join(prose).strip():
            cells.append(Cell("markdown", "\n".join(prose)))
        prose.clear()

    for line in text.splitlines():
        fence = _FENCE_PATTERN.match(line)
        if in_foreign_fence:
            # non-Python listings stay part of the prose
            prose.append(line)
            if fence is not None and not fence.group("lang"):
                in_foreign_fence = False
            continue
        if fence_lang is None:
            if fence is not None and fence.group("lang").lower() in _CODE_LANGUAGES:
                flush_prose()
                fence_lang = fence.group("lang").lower()
                continue
            if fence is not None:
                in_foreign_fence = True
            prose.append(line)
            continue
        if fence is not None and not fence.group("lang"):
            cells.append(Cell("code", "\n".join(code)))
            code.clear()
            fence_lang = None
            continue
        code.append(line)

    if fence_lang is not None:
        raise LessonDocumentError("Unterminated code fence in markdown lesson")
    flush_prose()
    return cells


class _DocumentBuilder:
    def __init__(self, fallback_name: str) -> None:
        self.lesson = LessonBlueprint(name=fallback_name)
        self.challenges: List[ChallengeBlueprint] = []
        self.current: Optional[ChallengeBlueprint] = None
        self.section = CONTENTS

    def add_markdown(self, text: str) -> None:
        pending: List[str] = []
        in_fence = False
        for line in text.splitlines():
            fence = _FENCE_PATTERN.match(line)
            if in_fence or fence is not None:
                # fenced listings are display text, never markers
                pending.append(line)
                if fence is not None:
                    in_fence = bool(fence.group("lang")) or not in_fence
                continue
            marker = _match_marker(line)
            if marker is None:
                pending.append(line)
                continue
            self._add_prose(pending)
            pending = []
            self._apply_marker(*marker)
        self._add_prose(pending)

    def add_code(self, source: str) -> None:
        code = source.strip("\n")
        if not code.strip():
            return
        if self.current is None:
            if self.section == SETUP:
                self.lesson.setup.append(code)
            return
        if self.section == SETUP:
            self.current.setup.append(code)
        elif self.section == ENVIRONMENT_SETUP:
            self.current.environment_setup.append(code)
        else:
            self.current.contents.append(ContentBlock(kind="code", source=code))

    def _add_prose(self, lines: List[str]) -> None:
        content = "\n".join(lines).strip()
        if content and self.current is not None and self.section == CONTENTS:
            self.current.contents.append(ContentBlock(kind="markdown", source=content))

    def _apply_marker(self, marker: str, title: str) -> None:
        if marker == "lesson":
            if self.challenges:
                raise LessonDocumentError("[Lesson] heading must come before the first [Challenge]")
            if title:
                self.lesson.name = title
            self.section = CONTENTS
        elif marker == "challenge":
            if not title:
                raise LessonDocumentError("[Challenge] heading requires a name")
            self.current = ChallengeBlueprint(name=title)
            self.challenges.append(self.current)
            self.section = CONTENTS
        elif marker == ENVIRONMENT_SETUP:
            if self.current is None:
                raise LessonDocumentError("[EnvironmentSetup] is only allowed inside a [Challenge]")
            self.section = ENVIRONMENT_SETUP
        elif marker == SETUP:
            self.section = SETUP
        else:
            self.section = CONTENTS

    def build(self) -> LessonDocument:
        if not self.challenges:
            raise LessonDocumentError("Lesson document does not define any [Challenge]")
        seen: set[str] = set()
        for challenge in self.challenges:
            if challenge.name in seen:
                raise LessonDocumentError(f"Duplicate challenge name: {challenge.name}")
            seen.add(challenge.name)
        return LessonDocument(lesson=self.lesson, challenges=self.challenges)


def parse_lesson_document(name: str, raw: bytes) -> LessonDocument:
    """Parse ``raw`` bytes; ``name`` selects the format and the fallback lesson name."""
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise LessonDocumentError(f"{name} is not valid UTF-8") from exc

    suffix = Path(name).suffix.lower()
    if suffix == ".ipynb":
        cells = notebook_cells(text)
    elif suffix in {".md", ".markdown"}:
        cells = markdown_cells(text)
    else:
        raise LessonDocumentError(f"Unsupported lesson document type: {suffix or name}")

    builder = _DocumentBuilder(Path(name).stem)
    for cell in cells:
        if cell.kind == "markdown":
            builder.add_markdown(cell.source)
        else:
            builder.add_code(cell.source)
    document = builder.build()
    LOGGER.debug(
        "Parsed %s: lesson %r with %d challenge(s)",
        name,
        document.lesson.name,
        len(document.challenges),
    )
    return document


def load_lesson_document(path: Path) -> LessonDocument:
    path = Path(path).expanduser()
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise LessonDocumentError(f"Cannot read lesson document {path}: {exc}") from exc
    return parse_lesson_document(path.name, raw)


__all__ = [
    "Cell",
    "LessonDocumentError",
    "load_lesson_document",
    "markdown_cells",
    "notebook_cells",
    "parse_lesson_document",
]
