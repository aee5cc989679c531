"""
Debugger Session - Trusted input dispatch through the DevTools protocol.

Synthetic DOM clicks are flagged as untrusted and some pages ignore
them. When a debugger session is attached to the page, replay sends
pointer input through it instead.
"""

import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, TYPE_CHECKING

from qa_recorder.exceptions import DebuggerAttachError, DebuggerError

if TYPE_CHECKING:
    from playwright.async_api import CDPSession, Page

logger = logging.getLogger(__name__)


class DebuggerSession(ABC):
    """
    Abstract interface for a page-level debugger connection.

    At most one attachment exists per context. Detaching is idempotent,
    including after the browser detached the session on its own.
    """

    @abstractmethod
    async def attach(self, context_id: str) -> None:
        """
        Attach to a page context.

        Raises:
            DebuggerAttachError: If the context cannot be attached
        """
        ...

    @abstractmethod
    async def detach(self, context_id: str) -> None:
        ...

    @abstractmethod
    def is_attached(self, context_id: str) -> bool:
        ...

    @abstractmethod
    async def dispatch_pointer_press(self, context_id: str, x: float, y: float, click_count: int = 1) -> None:
        ...

    @abstractmethod
    async def dispatch_pointer_release(self, context_id: str, x: float, y: float, click_count: int = 1) -> None:
        ...

    @abstractmethod
    async def dispatch_text_insert(self, context_id: str, text: str) -> None:
        ...

    @abstractmethod
    def handle_detached(self, context_id: str, reason: Optional[str] = None) -> None:
        """Forget a session the browser closed out of band."""
        ...


class CDPDebuggerSession(DebuggerSession):
    """
    DebuggerSession over Playwright CDP sessions (Chromium only).

    Example:
        >>> debugger = CDPDebuggerSession()
        >>> context_id = debugger.register_page(page)
        >>> await debugger.attach(context_id)
        >>> await debugger.dispatch_pointer_press(context_id, 100, 40)
        >>> await debugger.dispatch_pointer_release(context_id, 100, 40)
    """

    def __init__(self):
        self._pages: Dict[str, "Page"] = {}
        self._sessions: Dict[str, "CDPSession"] = {}
        self._ids = itertools.count(1)

    def register_page(self, page: "Page", context_id: Optional[str] = None) -> str:
        """Make a page attachable under ``context_id`` (generated when omitted)."""
        context_id = context_id or f"page-{next(self._ids)}"
        self._pages[context_id] = page
        return context_id

    def is_attached(self, context_id: str) -> bool:
        return context_id in self._sessions

    async def attach(self, context_id: str) -> None:
        if context_id in self._sessions:
            return

        page = self._pages.get(context_id)
        if page is None:
            raise DebuggerAttachError(f"No page registered for {context_id}", context_id=context_id)

        try:
            session = await page.context.new_cdp_session(page)
            await session.send("Inspector.enable")
        except Exception as e:
            raise DebuggerAttachError(f"Could not attach debugger: {e}", context_id=context_id) from e

        session.on("Inspector.detached", lambda params: self.handle_detached(context_id, (params or {}).get("reason")))
        self._sessions[context_id] = session
        logger.info(f"Debugger attached to {context_id}")

    async def detach(self, context_id: str) -> None:
        session = self._sessions.pop(context_id, None)
        if session is None:
            return
        try:
            await session.detach()
        except Exception as e:
            logger.debug(f"Debugger detach for {context_id}: {e}")
        logger.info(f"Debugger detached from {context_id}")

    def handle_detached(self, context_id: str, reason: Optional[str] = None) -> None:
        if self._sessions.pop(context_id, None) is not None:
            logger.warning(f"Debugger detached from {context_id} by the browser: {reason or 'unknown reason'}")

    async def _send(self, context_id: str, method: str, params: Dict[str, Any]) -> None:
        session = self._sessions.get(context_id)
        if session is None:
            raise DebuggerError(f"Debugger not attached to {context_id}", {"method": method})
        try:
            await session.send(method, params)
        except Exception as e:
            raise DebuggerError(f"{method} failed: {e}", {"context_id": context_id}) from e

    async def _mouse(self, context_id: str, event_type: str, x: float, y: float, click_count: int) -> None:
        await self._send(context_id, "Input.dispatchMouseEvent", {
            "type": event_type,
            "x": x,
            "y": y,
            "button": "left",
            "clickCount": click_count,
        })

    async def dispatch_pointer_press(self, context_id: str, x: float, y: float, click_count: int = 1) -> None:
        await self._mouse(context_id, "mousePressed", x, y, click_count)

    async def dispatch_pointer_release(self, context_id: str, x: float, y: float, click_count: int = 1) -> None:
        await self._mouse(context_id, "mouseReleased", x, y, click_count)

    async def dispatch_text_insert(self, context_id: str, text: str) -> None:
        await self._send(context_id, "Input.insertText", {"text": text})
