"""
Replay Checkpoint - Carry an in-flight replay across a page load.

Before a navigate step runs, the orchestrator writes the steps that are
left into a named slot. The next page load consumes the slot exactly once
and resumes from there.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from qa_recorder.exceptions import CheckpointError, QARecorderError
from qa_recorder.recorder.steps import Step, step_from_dict

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

CHECKPOINT_VERSION = 1
DEFAULT_CHECKPOINT_KEY = "qa_recorder_pending_replay"


@dataclass
class ReplayCheckpoint:
    """
    Pending remainder of a replay.

    Attributes:
        remaining_steps: Steps after the navigate that wrote the checkpoint
        speed: Replay speed to continue with
        resume_from_index: Index of that navigate step in the original run
        settings: Replay options to carry over
    """
    remaining_steps: List[Step]
    speed: str = "normal"
    resume_from_index: int = 0
    settings: Dict[str, Any] = field(default_factory=dict)
    version: int = CHECKPOINT_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "remainingSteps": [s.to_dict() for s in self.remaining_steps],
            "speed": self.speed,
            "resumeFromIndex": self.resume_from_index,
            "settings": self.settings,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReplayCheckpoint":
        """
        Decode a checkpoint.

        Raises:
            CheckpointError: If the version is unknown or a step is invalid
        """
        version = data.get("version")
        if version != CHECKPOINT_VERSION:
            raise CheckpointError(
                f"Unsupported checkpoint version: {version}",
                {"expected": CHECKPOINT_VERSION},
            )
        try:
            steps = [step_from_dict(s) for s in data.get("remainingSteps", [])]
        except QARecorderError as e:
            raise CheckpointError(f"Invalid step in checkpoint: {e.message}") from e
        return cls(
            remaining_steps=steps,
            speed=data.get("speed", "normal"),
            resume_from_index=int(data.get("resumeFromIndex", 0)),
            settings=data.get("settings") or {},
        )

    @classmethod
    def from_json(cls, raw: str) -> "ReplayCheckpoint":
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise CheckpointError(f"Checkpoint is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise CheckpointError("Checkpoint must be a JSON object")
        return cls.from_dict(data)


class CheckpointStore(ABC):
    """Single named slot holding at most one checkpoint."""

    @abstractmethod
    async def write(self, checkpoint: ReplayCheckpoint) -> None:
        """Store a checkpoint, replacing any existing one."""
        ...

    @abstractmethod
    async def take(self) -> Optional[ReplayCheckpoint]:
        """
        Read and delete the checkpoint in one operation.

        Returns:
            The checkpoint, or None when the slot is empty or unreadable
        """
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Delete any stored checkpoint."""
        ...

    def _decode(self, raw: Optional[str]) -> Optional[ReplayCheckpoint]:
        if not raw:
            return None
        try:
            return ReplayCheckpoint.from_json(raw)
        except CheckpointError as e:
            logger.warning(f"Discarding pending replay: {e}")
            return None


class MemoryCheckpointStore(CheckpointStore):
    """In-process store; survives navigations because the driver process does."""

    def __init__(self):
        self._raw: Optional[str] = None

    @property
    def has_checkpoint(self) -> bool:
        return self._raw is not None

    async def write(self, checkpoint: ReplayCheckpoint) -> None:
        self._raw = checkpoint.to_json()
        logger.debug(f"Checkpoint written at step {checkpoint.resume_from_index}")

    async def take(self) -> Optional[ReplayCheckpoint]:
        raw, self._raw = self._raw, None
        return self._decode(raw)

    async def clear(self) -> None:
        self._raw = None


class SessionStorageCheckpointStore(CheckpointStore):
    """
    Store the checkpoint in the page's ``sessionStorage``.

    The slot is per-origin, so a navigation to another origin starts
    with an empty slot.
    """

    _WRITE_JS = "([key, value]) => window.sessionStorage.setItem(key, value)"
    _TAKE_JS = """
    (key) => {
        const value = window.sessionStorage.getItem(key);
        window.sessionStorage.removeItem(key);
        return value;
    }
    """
    _CLEAR_JS = "(key) => window.sessionStorage.removeItem(key)"

    def __init__(self, page: "Page", key: str = DEFAULT_CHECKPOINT_KEY):
        self._page = page
        self.key = key

    async def write(self, checkpoint: ReplayCheckpoint) -> None:
        try:
            await self._page.evaluate(self._WRITE_JS, [self.key, checkpoint.to_json()])
        except Exception as e:
            raise CheckpointError(f"Could not write checkpoint: {e}", {"key": self.key}) from e
        logger.debug(f"Checkpoint written to sessionStorage[{self.key}] at step {checkpoint.resume_from_index}")

    async def take(self) -> Optional[ReplayCheckpoint]:
        try:
            raw = await self._page.evaluate(self._TAKE_JS, self.key)
        except Exception as e:
            logger.warning(f"Could not read checkpoint: {e}")
            return None
        checkpoint = self._decode(raw)
        if checkpoint is not None:
            logger.info(f"Consumed pending replay ({len(checkpoint.remaining_steps)} steps left)")
        return checkpoint

    async def clear(self) -> None:
        try:
            await self._page.evaluate(self._CLEAR_JS, self.key)
        except Exception as e:
            logger.debug(f"Could not clear checkpoint: {e}")
