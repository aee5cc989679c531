"""
Replay Status - Per-step outcome events and run states.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class StepState(str, Enum):
    """Outcome of one step within a run."""
    PENDING = "pending"
    EXECUTING = "executing"
    SUCCESS = "success"
    ERROR = "error"


class RunState(str, Enum):
    """Lifecycle of a replay run."""
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    SUSPENDED = "suspended"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not RunState.RUNNING


@dataclass(frozen=True)
class StepStatus:
    """
    Status event for one step.
    
    Attributes:
        index: Position of the step in the original recording
        state: What happened
        message: Error message for ERROR statuses
    """
    index: int
    state: StepState
    message: Optional[str] = None
    
    @classmethod
    def executing(cls, index: int) -> "StepStatus":
        return cls(index, StepState.EXECUTING)
    
    @classmethod
    def success(cls, index: int) -> "StepStatus":
        return cls(index, StepState.SUCCESS)
    
    @classmethod
    def error(cls, index: int, message: str) -> "StepStatus":
        return cls(index, StepState.ERROR, message)
    
    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"index": self.index, "status": self.state.value}
        if self.message is not None:
            result["message"] = self.message
        return result
