"""
Steps - The recorded step variants and the Recording that holds them.

Steps are immutable value objects; two steps with the same fields are
equal, which is what the capture dedup gate relies on. Serialized keys
follow the recording JSON format (``assertedEvents``, ``offsetX``, ...).
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from qa_recorder.exceptions import StepValidationError
from qa_recorder.selectors.models import SelectorSet

DEFAULT_TARGET = "main"
DEFAULT_WAIT_TIMEOUT_MS = 5000


class StepType(str, Enum):
    """Serialized ``type`` discriminator of a step."""
    NAVIGATE = "navigate"
    SET_VIEWPORT = "setViewport"
    CLICK = "click"
    CHANGE = "change"
    WAIT_FOR_ELEMENT = "waitForElement"


def _require_selectors(selectors: SelectorSet, step_type: StepType) -> None:
    if not isinstance(selectors, SelectorSet) or not selectors:
        raise StepValidationError(
            f"{step_type.value} step requires a non-empty selector set",
            step_type=step_type.value,
        )


@dataclass(frozen=True)
class AssertedEvent:
    """Navigation expectation attached to a navigate step."""
    url: str
    title: str = ""
    type: str = "navigation"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "url": self.url, "title": self.title}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssertedEvent":
        return cls(
            url=data.get("url", ""),
            title=data.get("title", ""),
            type=data.get("type", "navigation"),
        )


@dataclass(frozen=True)
class NavigateStep:
    """Load a URL in the main frame."""
    url: str
    asserted_events: Tuple[AssertedEvent, ...] = ()
    type = StepType.NAVIGATE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "url": self.url,
            "assertedEvents": [e.to_dict() for e in self.asserted_events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NavigateStep":
        return cls(
            url=data.get("url", ""),
            asserted_events=tuple(AssertedEvent.from_dict(e) for e in data.get("assertedEvents", [])),
        )


@dataclass(frozen=True)
class SetViewportStep:
    """Resize the viewport to the recorded dimensions."""
    width: int
    height: int
    device_scale_factor: float = 1
    is_mobile: bool = False
    has_touch: bool = False
    is_landscape: bool = False
    type = StepType.SET_VIEWPORT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "width": self.width,
            "height": self.height,
            "deviceScaleFactor": self.device_scale_factor,
            "isMobile": self.is_mobile,
            "hasTouch": self.has_touch,
            "isLandscape": self.is_landscape,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SetViewportStep":
        return cls(
            width=int(data.get("width", 0)),
            height=int(data.get("height", 0)),
            device_scale_factor=data.get("deviceScaleFactor", 1),
            is_mobile=bool(data.get("isMobile", False)),
            has_touch=bool(data.get("hasTouch", False)),
            is_landscape=bool(data.get("isLandscape", False)),
        )


@dataclass(frozen=True)
class ClickStep:
    """Click an element at an offset from its bounding box."""
    selectors: SelectorSet
    offset_x: float = 0
    offset_y: float = 0
    url: str = ""
    target: str = DEFAULT_TARGET
    type = StepType.CLICK

    def __post_init__(self) -> None:
        _require_selectors(self.selectors, self.type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "target": self.target,
            "url": self.url,
            "selectors": self.selectors.to_list(),
            "offsetX": self.offset_x,
            "offsetY": self.offset_y,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClickStep":
        return cls(
            selectors=SelectorSet.from_list(data.get("selectors", [])),
            offset_x=data.get("offsetX", 0),
            offset_y=data.get("offsetY", 0),
            url=data.get("url", ""),
            target=data.get("target", DEFAULT_TARGET),
        )


@dataclass(frozen=True)
class ChangeStep:
    """Set an element's value (or text for editable containers)."""
    selectors: SelectorSet
    value: str
    url: str = ""
    target: str = DEFAULT_TARGET
    type = StepType.CHANGE

    def __post_init__(self) -> None:
        _require_selectors(self.selectors, self.type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "target": self.target,
            "url": self.url,
            "selectors": self.selectors.to_list(),
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangeStep":
        return cls(
            selectors=SelectorSet.from_list(data.get("selectors", [])),
            value=data.get("value", ""),
            url=data.get("url", ""),
            target=data.get("target", DEFAULT_TARGET),
        )


@dataclass(frozen=True)
class WaitForElementStep:
    """
    Wait for an element and optionally assert its value or text.

    Attributes:
        selectors: Where the element is
        value: Expected value property, compared exactly
        text: Expected text, compared after trimming
        name: Optional label for the check
        timeout: Wait budget in milliseconds
    """
    selectors: SelectorSet
    value: Optional[str] = None
    text: Optional[str] = None
    name: Optional[str] = None
    timeout: int = DEFAULT_WAIT_TIMEOUT_MS
    visible: bool = True
    target: str = DEFAULT_TARGET
    type = StepType.WAIT_FOR_ELEMENT

    def __post_init__(self) -> None:
        _require_selectors(self.selectors, self.type)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "type": self.type.value,
            "target": self.target,
            "selectors": self.selectors.to_list(),
            "visible": self.visible,
            "timeout": self.timeout,
        }
        if self.value is not None:
            result["value"] = self.value
        if self.text is not None:
            result["text"] = self.text
        if self.name is not None:
            result["name"] = self.name
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WaitForElementStep":
        return cls(
            selectors=SelectorSet.from_list(data.get("selectors", [])),
            value=data.get("value"),
            text=data.get("text"),
            name=data.get("name"),
            timeout=int(data.get("timeout", DEFAULT_WAIT_TIMEOUT_MS)),
            visible=bool(data.get("visible", True)),
            target=data.get("target", DEFAULT_TARGET),
        )


Step = Union[NavigateStep, SetViewportStep, ClickStep, ChangeStep, WaitForElementStep]

_STEP_CLASSES = {
    StepType.NAVIGATE.value: NavigateStep,
    StepType.SET_VIEWPORT.value: SetViewportStep,
    StepType.CLICK.value: ClickStep,
    StepType.CHANGE.value: ChangeStep,
    StepType.WAIT_FOR_ELEMENT.value: WaitForElementStep,
}


def is_known_step_type(step_type: Any) -> bool:
    return step_type in _STEP_CLASSES


def step_from_dict(data: Dict[str, Any]) -> Step:
    """
    Decode one serialized step.

    Raises:
        StepValidationError: For unknown step types or missing selectors
    """
    step_type = data.get("type")
    step_class = _STEP_CLASSES.get(step_type)
    if step_class is None:
        raise StepValidationError(f"Unknown step type: {step_type}", step_type=str(step_type))
    return step_class.from_dict(data)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Recording:
    """
    A named, ordered sequence of steps.

    Appended to during capture; steps may be deleted by index afterward.
    """
    title: str
    id: int = field(default_factory=_now_ms)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    selected_selector_types: List[str] = field(default_factory=lambda: ["css", "xpath"])
    steps: List[Step] = field(default_factory=list)

    def append_step(self, step: Step) -> None:
        self.steps.append(step)

    def extend(self, steps: Sequence[Step]) -> None:
        self.steps.extend(steps)

    def delete_step(self, index: int) -> Step:
        """Remove and return the step at ``index``."""
        if index < 0 or index >= len(self.steps):
            raise IndexError(f"Step index {index} out of range (0-{len(self.steps) - 1})")
        return self.steps.pop(index)

    @property
    def last_step(self) -> Optional[Step]:
        return self.steps[-1] if self.steps else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "createdAt": self.created_at,
            "selectedSelectorTypes": list(self.selected_selector_types),
            "steps": [s.to_dict() for s in self.steps],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Recording":
        """Create from dictionary."""
        return cls(
            id=int(data.get("id") or _now_ms()),
            title=data.get("title", ""),
            created_at=data.get("createdAt") or datetime.now().isoformat(),
            selected_selector_types=list(data.get("selectedSelectorTypes") or ["css", "xpath"]),
            steps=[step_from_dict(s) for s in data.get("steps", [])],
        )
