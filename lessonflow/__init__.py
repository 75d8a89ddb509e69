"""
Progression engine for guided, kernel-backed lessons.

Subpackages: ``kernel`` (execution substrate), ``journey`` (lessons and
challenges), ``documents`` (lesson parsing), ``pipeline`` (bootstrap and
progression middleware), ``core`` (config and provenance), ``cli``.
"""

from importlib import metadata


def get_version() -> str:
    """Return the installed project version."""
    try:
        return metadata.version("lessonflow")
    except metadata.PackageNotFoundError:
        return "0.0.0"


__all__ = ["get_version"]
