"""
Configuration and provenance utilities for the lesson engine.

The CLI and the start-lesson directive load settings from here before a
lesson session exists.
"""

from .config import EngineConfig, load_engine_config
from .provenance import ProgressionEvent, ProgressionLog, ProgressionStage

__all__ = [
    "EngineConfig",
    "ProgressionEvent",
    "ProgressionLog",
    "ProgressionStage",
    "load_engine_config",
]
