"""
Configuration module - Settings for recording, replay and the CLI.

Usage:
    from qa_recorder.config import get_settings, load_config

    settings = get_settings()                      # cached, loaded on first use
    settings = load_config("ci.yaml", replay={"speed": "slow"})

Environment variables use a double underscore between levels:
    QA_RECORDER__REPLAY__TIMEOUT_MS=10000
    QA_RECORDER__RECORDER__TEST_ID_ATTRIBUTE=data-qa
"""

from typing import Optional

from qa_recorder.config.settings import (
    Settings,
    BrowserSettings,
    RecorderSettings,
    ReplaySettings,
    StorageSettings,
    LoggingSettings,
)
from qa_recorder.config.loader import ConfigLoader, load_config

_cached: Optional[Settings] = None


def get_settings() -> Settings:
    """Settings used when a component is built without explicit ones."""
    global _cached
    if _cached is None:
        _cached = load_config()
    return _cached


def reset_settings() -> None:
    """Drop the cached settings; the next get_settings() reloads them."""
    global _cached
    _cached = None


__all__ = [
    "Settings",
    "BrowserSettings",
    "RecorderSettings",
    "ReplaySettings",
    "StorageSettings",
    "LoggingSettings",
    "ConfigLoader",
    "load_config",
    "get_settings",
    "reset_settings",
]
