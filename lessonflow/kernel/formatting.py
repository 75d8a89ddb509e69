"""Mime-typed representations of values produced by the kernel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List


@dataclass(frozen=True)
class FormattedValue:
    mime_type: str
    value: str

    @classmethod
    def from_object(cls, obj: Any) -> List["FormattedValue"]:
        """Return the HTML (when the object provides one) and plain-text forms of ``obj``."""
        values: List[FormattedValue] = []
        repr_html = getattr(obj, "_repr_html_", None)
        if callable(repr_html):
            html = repr_html()
            if html is not None:
                values.append(cls("text/html", str(html)))
        values.append(cls("text/plain", str(obj)))
        return values


def plain_text(values: List[FormattedValue]) -> str:
    for item in values:
        if item.mime_type == "text/plain":
            return item.value
    return values[0].value if values else ""


__all__ = ["FormattedValue", "plain_text"]
