from __future__ import annotations

from lessonflow import get_version


def test_get_version_returns_string() -> None:
    version = get_version()
    assert isinstance(version, str)
    assert version
