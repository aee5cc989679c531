"""
Event Capture - Turn DOM events into recorded steps.

EventCapture is the recording state machine. It owns at most one
RecordingContext, synthesizes selectors for each event target, debounces
typing into single change steps, drops consecutive duplicates and
supports a picking sub-mode that turns the next click into an
element check.
"""

import asyncio
import itertools
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from lxml.html import HtmlElement

from qa_recorder.config import RecorderSettings
from qa_recorder.dom.snapshot import BoundingBox, live_path, tag_of, text_content
from qa_recorder.exceptions import SessionActiveError
from qa_recorder.recorder.steps import (
    AssertedEvent,
    ChangeStep,
    ClickStep,
    NavigateStep,
    Recording,
    SetViewportStep,
    Step,
    WaitForElementStep,
)
from qa_recorder.selectors.synthesizer import SelectorSynthesizer

logger = logging.getLogger(__name__)

_MOBILE_AGENT = re.compile(r"Android|webOS|iPhone|iPad|iPod|BlackBerry|IEMobile|Opera Mini", re.IGNORECASE)
_MOBILE_MAX_WIDTH = 768
_TOUCH_MAX_WIDTH = 1024
_VALUE_TAGS = ("input", "textarea", "select")
_KEY_EVENTS = ("keydown", "keyup")


@dataclass
class PageInfo:
    """Page state read when a recording starts."""
    url: str
    title: str = ""
    width: int = 1280
    height: int = 720
    device_scale_factor: float = 1
    has_touch: bool = False
    user_agent: str = ""

    @property
    def is_mobile(self) -> bool:
        if _MOBILE_AGENT.search(self.user_agent or ""):
            return True
        return self.width < _MOBILE_MAX_WIDTH or (self.has_touch and self.width < _TOUCH_MAX_WIDTH)

    @property
    def is_landscape(self) -> bool:
        return self.width > self.height


@dataclass
class DomEvent:
    """
    A DOM event observed on the recorded page.

    Attributes:
        type: click, change, input, keydown or keyup
        element: Event target in a snapshot taken for this event
        url: Page URL when the event fired
        value: Live value of form fields (snapshots only carry attributes)
        client_x: Pointer X in viewport coordinates (clicks)
        client_y: Pointer Y in viewport coordinates (clicks)
        box: Target bounding box in viewport coordinates (clicks)
    """
    type: str
    element: Optional[HtmlElement] = None
    url: str = ""
    value: Optional[str] = None
    client_x: float = 0
    client_y: float = 0
    box: Optional[BoundingBox] = None


@dataclass
class CaptureSubscription:
    """Handle returned by ``EventCapture.start``; pass it back to ``stop``."""
    id: int
    active: bool = True


@dataclass
class PendingInput:
    event: DomEvent
    handle: asyncio.TimerHandle


@dataclass
class RecordingContext:
    """State of the one recording session in progress."""
    recording: Recording
    schemes: Tuple[str, ...]
    subscription: CaptureSubscription
    is_recording: bool = True
    is_continuing: bool = False
    is_picking: bool = False
    pick_name: Optional[str] = None
    last_step: Optional[Step] = None
    key_events: int = 0
    pending_inputs: Dict[str, PendingInput] = field(default_factory=dict)


class EventCapture:
    """
    Recording state machine.

    Example:
        >>> capture = EventCapture(SelectorSynthesizer(), settings.recorder)
        >>> subscription = capture.start(Recording(title="login"), ["css", "xpath"], page_info)
        >>> capture.handle_event(DomEvent(type="click", element=button))
        >>> recording = capture.stop(subscription)
    """

    def __init__(
        self,
        synthesizer: Optional[SelectorSynthesizer] = None,
        settings: Optional[RecorderSettings] = None,
    ):
        self.settings = settings or RecorderSettings()
        self.synthesizer = synthesizer or SelectorSynthesizer(
            test_id_attribute=self.settings.test_id_attribute,
            text_max_length=self.settings.text_selector_max_length,
            max_path_depth=self.settings.max_path_depth,
        )
        self._context: Optional[RecordingContext] = None
        self._subscription_ids = itertools.count(1)
        self._on_step_callbacks: List[Callable[[Step], None]] = []

    @property
    def context(self) -> Optional[RecordingContext]:
        return self._context

    @property
    def is_recording(self) -> bool:
        return self._context is not None and self._context.is_recording

    @property
    def is_picking(self) -> bool:
        return self._context is not None and self._context.is_picking

    def on_step(self, callback: Callable[[Step], None]) -> None:
        """Register a callback for every step appended to the recording."""
        self._on_step_callbacks.append(callback)

    def start(
        self,
        recording: Recording,
        schemes: Sequence[str],
        page_info: PageInfo,
        skip_initial_steps: bool = False,
    ) -> CaptureSubscription:
        """
        Begin capturing into ``recording``.

        Args:
            recording: Recording to append to
            schemes: Selector schemes to synthesize
            page_info: Current page dimensions and location
            skip_initial_steps: Continue an existing recording without
                emitting the viewport and navigate steps

        Raises:
            SessionActiveError: If a recording is already in progress
        """
        if self._context is not None:
            raise SessionActiveError("A recording is already in progress", session_kind="recording")

        subscription = CaptureSubscription(id=next(self._subscription_ids))
        self._context = RecordingContext(
            recording=recording,
            schemes=tuple(schemes),
            subscription=subscription,
            is_continuing=skip_initial_steps,
            last_step=recording.last_step,
        )
        if not skip_initial_steps:
            recording.selected_selector_types = list(schemes)
            self._record(SetViewportStep(
                width=page_info.width,
                height=page_info.height,
                device_scale_factor=page_info.device_scale_factor,
                is_mobile=page_info.is_mobile,
                has_touch=page_info.has_touch,
                is_landscape=page_info.is_landscape,
            ))
            self._record(self._navigate_step(page_info.url, page_info.title))

        logger.info(
            f"Started {'continuing ' if skip_initial_steps else ''}recording: {recording.title} "
            f"(selectors: {', '.join(schemes)})"
        )
        return subscription

    def stop(self, subscription: CaptureSubscription) -> Recording:
        """
        Stop capturing and return the recording.

        Pending debounced inputs are flushed first.
        """
        context = self._context
        if context is None:
            raise RuntimeError("Not recording. Call start() first.")
        if context.subscription.id != subscription.id:
            raise ValueError(f"Subscription {subscription.id} does not own the active recording")

        self._flush_pending_inputs()
        context.is_recording = False
        subscription.active = False
        self._context = None

        logger.info(
            f"Stopped recording. Captured {len(context.recording.steps)} steps "
            f"({context.key_events} key events observed)."
        )
        return context.recording

    def begin_pick(self, name: Optional[str] = None) -> None:
        """Turn the next click into a WaitForElement step."""
        if self._context is None:
            raise RuntimeError("Not recording. Call start() first.")
        self._context.is_picking = True
        self._context.pick_name = name
        logger.debug("Element picking started")

    def cancel_pick(self) -> None:
        if self._context is not None and self._context.is_picking:
            self._context.is_picking = False
            self._context.pick_name = None
            logger.debug("Element picking cancelled")

    def record_navigation(self, url: str, title: str = "") -> None:
        """Record a main-frame navigation observed while recording."""
        if not self.is_recording:
            return
        self._flush_pending_inputs()
        self._record(self._navigate_step(url, title))

    def handle_event(self, event: DomEvent) -> None:
        """Dispatch one DOM event."""
        context = self._context
        if context is None or not context.is_recording:
            return

        if event.type in _KEY_EVENTS:
            context.key_events += 1
            return
        if event.element is None:
            logger.debug(f"Ignoring {event.type} event without a target")
            return

        if context.is_picking:
            if event.type == "click":
                self._finish_pick(event)
            return

        if event.type == "click":
            self._flush_pending_inputs()
            self._handle_click(event)
        elif event.type == "change":
            self._cancel_pending_input(live_path(event.element))
            self._handle_change(event)
        elif event.type == "input":
            self._schedule_input(event)
        else:
            logger.debug(f"Ignoring unsupported event type: {event.type}")

    # ------------------------------------------------------------------
    # Step builders
    # ------------------------------------------------------------------

    def _navigate_step(self, url: str, title: str) -> NavigateStep:
        return NavigateStep(url=url, asserted_events=(AssertedEvent(url=url, title=title),))

    def _selectors_for(self, event: DomEvent):
        return self.synthesizer.synthesize(event.element, self._context.schemes, event_type=event.type)

    def _value_of(self, event: DomEvent) -> str:
        if event.value is not None:
            return event.value
        if tag_of(event.element) in _VALUE_TAGS:
            return event.element.get("value") or ""
        return text_content(event.element)

    def _handle_click(self, event: DomEvent) -> None:
        selectors = self._selectors_for(event)
        if not selectors:
            logger.warning("Could not build selectors for clicked element")
            return
        offset_x = offset_y = 0.0
        if event.box is not None:
            offset_x = event.client_x - event.box.x
            offset_y = event.client_y - event.box.y
        self._record(ClickStep(selectors=selectors, offset_x=offset_x, offset_y=offset_y, url=event.url))

    def _handle_change(self, event: DomEvent) -> None:
        selectors = self._selectors_for(event)
        if not selectors:
            logger.warning("Could not build selectors for changed element")
            return
        self._record(ChangeStep(selectors=selectors, value=self._value_of(event), url=event.url))

    def _finish_pick(self, event: DomEvent) -> None:
        context = self._context
        name = context.pick_name
        context.is_picking = False
        context.pick_name = None

        selectors = self._selectors_for(event)
        if not selectors:
            logger.warning("Could not build selectors for picked element")
            return
        if tag_of(event.element) in ("input", "textarea"):
            step = WaitForElementStep(selectors=selectors, value=self._value_of(event), name=name)
        else:
            text = text_content(event.element)
            step = WaitForElementStep(selectors=selectors, text=text or None, name=name)
        self._record(step)

    # ------------------------------------------------------------------
    # Input debounce
    # ------------------------------------------------------------------

    def _schedule_input(self, event: DomEvent) -> None:
        key = live_path(event.element)
        self._cancel_pending_input(key)
        loop = asyncio.get_running_loop()
        handle = loop.call_later(
            self.settings.input_debounce_ms / 1000,
            self._fire_pending_input,
            key,
        )
        self._context.pending_inputs[key] = PendingInput(event=event, handle=handle)

    def _cancel_pending_input(self, key: str) -> Optional[PendingInput]:
        pending = self._context.pending_inputs.pop(key, None)
        if pending is not None:
            pending.handle.cancel()
        return pending

    def _fire_pending_input(self, key: str) -> None:
        if self._context is None:
            return
        pending = self._context.pending_inputs.pop(key, None)
        if pending is not None:
            self._handle_change(pending.event)

    def _flush_pending_inputs(self) -> None:
        context = self._context
        if context is None:
            return
        for key in list(context.pending_inputs):
            pending = self._cancel_pending_input(key)
            if pending is not None:
                self._handle_change(pending.event)

    # ------------------------------------------------------------------
    # Dedup gate
    # ------------------------------------------------------------------

    def _record(self, step: Step) -> None:
        context = self._context
        if step == context.last_step:
            logger.debug(f"Skipping duplicate {step.type.value} step")
            return

        context.recording.append_step(step)
        context.last_step = step
        logger.debug(f"Recorded: {step.type.value} (#{len(context.recording.steps)})")

        for callback in self._on_step_callbacks:
            try:
                callback(step)
            except Exception as e:
                logger.warning(f"Step callback error: {e}")
