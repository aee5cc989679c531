"""
Replay Module - Re-execute recordings against a live page.

Replays survive full page navigations through a checkpoint written
before every navigate step and consumed on the next load.
"""

from qa_recorder.replay.status import StepState, RunState, StepStatus
from qa_recorder.replay.checkpoint import (
    ReplayCheckpoint,
    CheckpointStore,
    MemoryCheckpointStore,
    SessionStorageCheckpointStore,
)
from qa_recorder.replay.driver import PageDriver, PlaywrightPageDriver
from qa_recorder.replay.executor import StepExecutor
from qa_recorder.replay.orchestrator import ReplayOrchestrator, ReplayRun, ReplaySession

__all__ = [
    "StepState",
    "RunState",
    "StepStatus",
    "ReplayCheckpoint",
    "CheckpointStore",
    "MemoryCheckpointStore",
    "SessionStorageCheckpointStore",
    "PageDriver",
    "PlaywrightPageDriver",
    "StepExecutor",
    "ReplayOrchestrator",
    "ReplayRun",
    "ReplaySession",
]
