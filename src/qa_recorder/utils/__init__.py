"""
Utilities module - Logging setup shared by the CLI commands.
"""

from qa_recorder.utils.logging import JsonLineFormatter, setup_logging

__all__ = [
    "JsonLineFormatter",
    "setup_logging",
]
