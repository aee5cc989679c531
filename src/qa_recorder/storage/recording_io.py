"""
Recording I/O - The exported recording document.

Runs of consecutive element checks are written as compact, readable
lines::

    {"checkSteps": ["expected element //h1[@id='title'] contain text - Welcome"]}

and expanded back into WaitForElement steps on import. Only checks that
the line format can carry in full are folded, so export then import
returns the same steps.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from qa_recorder.exceptions import RecordingFormatError
from qa_recorder.recorder.steps import (
    DEFAULT_TARGET,
    DEFAULT_WAIT_TIMEOUT_MS,
    Recording,
    Step,
    WaitForElementStep,
    is_known_step_type,
    step_from_dict,
)
from qa_recorder.selectors.models import Selector, SelectorGroup, SelectorScheme, SelectorSet

logger = logging.getLogger(__name__)

CHECK_STEPS_KEY = "checkSteps"
_CHECK_LINE = re.compile(r"^expected element (?P<xpath>.+?) contain text - (?P<text>.*)$", re.DOTALL)


def format_check(step: WaitForElementStep) -> str:
    """Render a foldable check as one line."""
    xpath = step.selectors.groups[0].primary.value
    return f"expected element {xpath} contain text - {step.text}"


def parse_check(line: str) -> WaitForElementStep:
    """
    Parse one check line back into a WaitForElement step.

    Raises:
        RecordingFormatError: If the line does not match the check format
    """
    match = _CHECK_LINE.match(line or "")
    if not match:
        raise RecordingFormatError(f"Unrecognized check step: {line!r}")
    selectors = SelectorSet.of([SelectorGroup.of(Selector.xpath(match.group("xpath")))])
    return WaitForElementStep(selectors=selectors, text=match.group("text"))


def is_foldable(step: Step) -> bool:
    """True when a step survives the check-line format unchanged."""
    if not isinstance(step, WaitForElementStep):
        return False
    groups = step.selectors.groups
    return (
        len(groups) == 1
        and len(groups[0].selectors) == 1
        and groups[0].scheme == SelectorScheme.XPATH
        and " contain text - " not in groups[0].primary.value
        and step.text is not None
        and step.text == step.text.strip()
        and step.value is None
        and step.name is None
        and step.timeout == DEFAULT_WAIT_TIMEOUT_MS
        and step.visible
        and step.target == DEFAULT_TARGET
    )


def export_steps(steps: List[Step]) -> List[Dict[str, Any]]:
    exported: List[Dict[str, Any]] = []
    block: Optional[List[str]] = None
    for step in steps:
        if is_foldable(step):
            if block is None:
                block = []
                exported.append({CHECK_STEPS_KEY: block})
            block.append(format_check(step))
        else:
            block = None
            exported.append(step.to_dict())
    return exported


def export_recording(recording: Recording) -> Dict[str, Any]:
    """Convert a recording to its exported document."""
    data = recording.to_dict()
    data["steps"] = export_steps(recording.steps)
    return data


def _expand_checks(lines: Any) -> List[Step]:
    if not isinstance(lines, list):
        raise RecordingFormatError(f"{CHECK_STEPS_KEY} must be a list")
    return [parse_check(line) for line in lines]


def import_steps(raw_steps: List[Any]) -> List[Step]:
    steps: List[Step] = []
    for raw in raw_steps:
        if not isinstance(raw, dict):
            raise RecordingFormatError(f"Step must be an object, got {type(raw).__name__}")
        if CHECK_STEPS_KEY in raw:
            steps.extend(_expand_checks(raw[CHECK_STEPS_KEY]))
        elif is_known_step_type(raw.get("type")):
            steps.append(step_from_dict(raw))
        else:
            logger.warning(f"Skipping unsupported step type: {raw.get('type')}")
    return steps


def import_recording(data: Any) -> Recording:
    """
    Build a recording from an exported document.

    Accepts the legacy shape whose checks sit in a top-level
    ``checkSteps`` array; those are appended after the regular steps.

    Raises:
        RecordingFormatError: If the document is not a recording
        StepValidationError: If a step lacks required fields
    """
    if not isinstance(data, dict):
        raise RecordingFormatError("Recording must be a JSON object")
    raw_steps = data.get("steps", [])
    if not isinstance(raw_steps, list):
        raise RecordingFormatError("Recording steps must be a list")

    steps = import_steps(raw_steps)
    if CHECK_STEPS_KEY in data:
        steps.extend(_expand_checks(data[CHECK_STEPS_KEY]))

    recording = Recording.from_dict({k: v for k, v in data.items() if k not in ("steps", CHECK_STEPS_KEY)})
    recording.extend(steps)
    return recording


def export_json(recording: Recording, indent: int = 2) -> str:
    return json.dumps(export_recording(recording), indent=indent, ensure_ascii=False)


def import_json(raw: str) -> Recording:
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise RecordingFormatError(f"Invalid recording JSON: {e}") from e
    return import_recording(data)
