"""
Exceptions module - Custom exception hierarchy.

This module defines all custom exceptions used throughout QA Recorder,
providing clear error types for recording and replay failures.
"""

from qa_recorder.exceptions.base import (
    QARecorderError,
    ConfigurationError,
    SessionActiveError,
    CheckpointError,
    RecordingFormatError,
    RecordingNotFoundError,
)
from qa_recorder.exceptions.browser import (
    BrowserError,
    PageClosedError,
    NavigationTimeoutError,
    DebuggerError,
    DebuggerAttachError,
)
from qa_recorder.exceptions.selectors import (
    SelectorError,
    InvalidSelectorSyntaxError,
    ElementNotFoundError,
)
from qa_recorder.exceptions.step import (
    StepError,
    StepValidationError,
    AssertionMismatchError,
)

__all__ = [
    # Base exceptions
    "QARecorderError",
    "ConfigurationError",
    "SessionActiveError",
    "CheckpointError",
    "RecordingFormatError",
    "RecordingNotFoundError",
    # Browser exceptions
    "BrowserError",
    "PageClosedError",
    "NavigationTimeoutError",
    "DebuggerError",
    "DebuggerAttachError",
    # Selector exceptions
    "SelectorError",
    "InvalidSelectorSyntaxError",
    "ElementNotFoundError",
    # Step exceptions
    "StepError",
    "StepValidationError",
    "AssertionMismatchError",
]
