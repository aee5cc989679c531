"""
Recorder Module - Record browser actions for replay.

This module turns user interactions on a page into a deduplicated,
navigation-aware sequence of steps.
"""

from qa_recorder.recorder.steps import (
    StepType,
    Step,
    AssertedEvent,
    NavigateStep,
    SetViewportStep,
    ClickStep,
    ChangeStep,
    WaitForElementStep,
    Recording,
    step_from_dict,
)
from qa_recorder.recorder.capture import (
    EventCapture,
    RecordingContext,
    CaptureSubscription,
    DomEvent,
    PageInfo,
)
from qa_recorder.recorder.recorder import BrowserRecorder

__all__ = [
    "StepType",
    "Step",
    "AssertedEvent",
    "NavigateStep",
    "SetViewportStep",
    "ClickStep",
    "ChangeStep",
    "WaitForElementStep",
    "Recording",
    "step_from_dict",
    "EventCapture",
    "RecordingContext",
    "CaptureSubscription",
    "DomEvent",
    "PageInfo",
    "BrowserRecorder",
]
