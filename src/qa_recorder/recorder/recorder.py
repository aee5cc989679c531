"""
Browser Recorder - Captures user actions in a Playwright page.

Injects a small script that forwards DOM events to Python through an
exposed binding. Each event carries a serialized copy of the document
with the event target marked, so selectors are synthesized against the
DOM exactly as it was when the event fired, even if the event triggers
a navigation.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

from qa_recorder.config import RecorderSettings
from qa_recorder.dom.snapshot import BoundingBox, DomSnapshot
from qa_recorder.recorder.capture import (
    CaptureSubscription,
    DomEvent,
    EventCapture,
    PageInfo,
)
from qa_recorder.recorder.steps import Recording

if TYPE_CHECKING:
    from playwright.async_api import Frame, Page

logger = logging.getLogger(__name__)

BINDING_NAME = "_qaRecorderEvent"
TARGET_MARKER = "data-qa-recorder-target"

_PAGE_INFO_JS = """
() => ({
    width: window.innerWidth,
    height: window.innerHeight,
    deviceScaleFactor: window.devicePixelRatio || 1,
    hasTouch: 'ontouchstart' in window,
    userAgent: navigator.userAgent,
})
"""

_LISTENER_JS = r"""
(function() {
    if (window._qaRecorderCleanup) {
        window._qaRecorderCleanup();
    }

    const MARKER = '%(marker)s';
    let counter = 0;

    function send(type, e) {
        const el = e.target;
        if (!el || el.nodeType !== 1 || !window.%(binding)s) return;
        const token = String(++counter);
        const payload = {type: type, url: location.href, token: token};
        if (type === 'click' || type === 'change' || type === 'input') {
            el.setAttribute(MARKER, token);
            payload.html = document.documentElement.outerHTML;
            el.removeAttribute(MARKER);
            if ('value' in el && typeof el.value === 'string') {
                payload.value = el.value;
            } else if (el.isContentEditable) {
                payload.value = el.textContent;
            }
        }
        if (type === 'click') {
            const rect = el.getBoundingClientRect();
            payload.clientX = e.clientX;
            payload.clientY = e.clientY;
            payload.box = {x: rect.x, y: rect.y, width: rect.width, height: rect.height};
        }
        try {
            window.%(binding)s(JSON.stringify(payload));
        } catch (err) {
            console.warn('[QA Recorder] Failed to send event:', err);
        }
    }

    const handlers = {};
    ['click', 'change', 'input', 'keydown', 'keyup'].forEach(function(type) {
        handlers[type] = function(e) { send(type, e); };
        document.addEventListener(type, handlers[type], true);
    });

    window._qaRecorderCleanup = function() {
        Object.keys(handlers).forEach(function(type) {
            document.removeEventListener(type, handlers[type], true);
        });
        delete window._qaRecorderCleanup;
    };
})();
""" % {"marker": TARGET_MARKER, "binding": BINDING_NAME}


def parse_js_event(event_json: str) -> DomEvent:
    """
    Decode an event sent by the injected script.

    The target is located through the marker attribute in the serialized
    document; the marker is removed from the snapshot and the live value
    is copied onto the node so selectors see what the user saw.
    """
    data: Dict[str, Any] = json.loads(event_json)
    event = DomEvent(
        type=data.get("type", ""),
        url=data.get("url", ""),
        value=data.get("value"),
        client_x=data.get("clientX") or 0,
        client_y=data.get("clientY") or 0,
    )
    box = data.get("box")
    if box:
        event.box = BoundingBox(
            x=box.get("x", 0),
            y=box.get("y", 0),
            width=box.get("width", 0),
            height=box.get("height", 0),
        )

    content = data.get("html")
    if content:
        snapshot = DomSnapshot.from_html(content, url=event.url)
        token = data.get("token", "")
        found = snapshot.root.xpath(f"//*[@{TARGET_MARKER}='{token}']")
        if found:
            element = found[0]
            del element.attrib[TARGET_MARKER]
            if event.value is not None and element.tag in ("input", "textarea", "select"):
                element.set("value", event.value)
            event.element = element
    return event


class BrowserRecorder:
    """
    Records user actions on a Playwright page into a Recording.

    Example:
        >>> recorder = BrowserRecorder()
        >>> await recorder.start(page, title="checkout")
        >>> # User performs actions...
        >>> recording = await recorder.stop()
        >>> print(recording.to_dict())
    """

    def __init__(
        self,
        settings: Optional[RecorderSettings] = None,
        capture: Optional[EventCapture] = None,
    ):
        self.settings = settings or RecorderSettings()
        self.capture = capture or EventCapture(settings=self.settings)
        self._page: Optional["Page"] = None
        self._subscription: Optional[CaptureSubscription] = None
        self._last_url: str = ""
        self._exposed_pages: List["Page"] = []
        self._tasks: set = set()

    @property
    def is_recording(self) -> bool:
        return self._subscription is not None

    async def start(
        self,
        page: "Page",
        recording: Optional[Recording] = None,
        title: str = "recording",
        schemes: Optional[Sequence[str]] = None,
        skip_initial_steps: bool = False,
    ) -> Recording:
        """
        Start recording actions on the page.

        Args:
            page: Playwright page to record
            recording: Existing recording to append to (new one if None)
            title: Title for a new recording
            schemes: Selector schemes (defaults to settings)
            skip_initial_steps: Don't emit the viewport/navigate preamble
        """
        if recording is None:
            recording = Recording(title=title)
        schemes = list(schemes or (
            recording.selected_selector_types if skip_initial_steps else self.settings.selector_types
        ))

        page_info = await self._read_page_info(page)
        self._subscription = self.capture.start(recording, schemes, page_info, skip_initial_steps)
        self._page = page
        self._last_url = page.url

        if page not in self._exposed_pages:
            await page.expose_function(BINDING_NAME, self._handle_js_event)
            self._exposed_pages.append(page)

        await self._inject(page)
        page.on("load", self._on_load)
        page.on("framenavigated", self._on_navigation)
        return recording

    async def continue_recording(self, page: "Page", recording: Recording) -> Recording:
        """Resume appending to ``recording`` without the preamble steps."""
        return await self.start(page, recording=recording, skip_initial_steps=True)

    def begin_pick(self, name: Optional[str] = None) -> None:
        self.capture.begin_pick(name)

    def cancel_pick(self) -> None:
        self.capture.cancel_pick()

    async def stop(self) -> Recording:
        """
        Stop recording and return the recording.

        Returns:
            The completed recording
        """
        if self._subscription is None:
            raise RuntimeError("Not recording. Call start() first.")

        page = self._page
        recording = self.capture.stop(self._subscription)
        self._subscription = None
        self._page = None

        if page is not None:
            page.remove_listener("load", self._on_load)
            page.remove_listener("framenavigated", self._on_navigation)
            if not page.is_closed():
                try:
                    await page.evaluate("window._qaRecorderCleanup && window._qaRecorderCleanup()")
                except Exception as e:
                    logger.debug(f"Listener cleanup failed: {e}")
        return recording

    async def _read_page_info(self, page: "Page") -> PageInfo:
        info = await page.evaluate(_PAGE_INFO_JS)
        return PageInfo(
            url=page.url,
            title=await page.title(),
            width=info.get("width", 0),
            height=info.get("height", 0),
            device_scale_factor=info.get("deviceScaleFactor", 1),
            has_touch=bool(info.get("hasTouch")),
            user_agent=info.get("userAgent", ""),
        )

    async def _inject(self, page: "Page") -> None:
        try:
            await page.evaluate(_LISTENER_JS)
        except Exception as e:
            logger.debug(f"JS injection error: {e}")

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_load(self, page: "Page") -> None:
        if self.is_recording:
            self._spawn(self._inject(page))

    def _handle_js_event(self, event_json: str) -> None:
        """Handle an event from JavaScript."""
        if not self.is_recording:
            return
        try:
            event = parse_js_event(event_json)
        except (ValueError, TypeError) as e:
            logger.warning(f"Error decoding JS event: {e}")
            return
        self.capture.handle_event(event)

    def _on_navigation(self, frame: "Frame") -> None:
        """Handle navigation events."""
        if not self.is_recording or self._page is None:
            return
        if frame != self._page.main_frame:
            return

        new_url = frame.url
        if new_url != self._last_url and new_url != "about:blank":
            self._last_url = new_url
            self._spawn(self._record_navigation(self._page, new_url))

    async def _record_navigation(self, page: "Page", url: str) -> None:
        try:
            title = await page.title()
        except Exception as e:
            logger.debug(f"Could not read title after navigation: {e}")
            title = ""
        self.capture.record_navigation(url, title)
