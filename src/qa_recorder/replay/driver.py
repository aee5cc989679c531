"""
Page Driver - The page operations replay needs, behind an interface.

Elements are addressed by the absolute XPath of a snapshot node, so the
executor never holds live browser handles.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, TYPE_CHECKING

from qa_recorder.dom.snapshot import BoundingBox, DomSnapshot
from qa_recorder.exceptions import (
    BrowserError,
    ElementNotFoundError,
    NavigationTimeoutError,
    PageClosedError,
)

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


class PageDriver(ABC):
    """
    Abstract interface for driving the replayed page.

    Implementations wrap a live page; tests use fakes over lxml snapshots.
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """Current page URL."""
        ...

    @property
    @abstractmethod
    def context_id(self) -> str:
        """Identifier of the page for debugger sessions."""
        ...

    @abstractmethod
    def is_closed(self) -> bool:
        ...

    @abstractmethod
    async def snapshot(self) -> DomSnapshot:
        """Parse the current DOM."""
        ...

    @abstractmethod
    async def goto(self, url: str, timeout_ms: Optional[int] = None) -> None:
        """
        Navigate the main frame.

        Raises:
            NavigationTimeoutError: If the load does not finish in time
        """
        ...

    @abstractmethod
    async def set_viewport(self, width: int, height: int) -> None:
        ...

    @abstractmethod
    async def scroll_into_view(self, path: str) -> None:
        ...

    @abstractmethod
    async def bounding_box(self, path: str) -> Optional[BoundingBox]:
        ...

    @abstractmethod
    async def click(self, path: str) -> None:
        """Synthetic DOM click on the element."""
        ...

    @abstractmethod
    async def set_value(self, path: str, value: str) -> None:
        """
        Set the value property (or text content when there is none)
        and dispatch ``change`` and ``input``.
        """
        ...

    @abstractmethod
    async def read_value(self, path: str) -> Optional[str]:
        """Live value property, or None for elements without one."""
        ...

    @abstractmethod
    async def read_text(self, path: str) -> str:
        ...


_SET_VALUE_JS = """
(el, value) => {
    if ('value' in el) {
        el.value = value;
    } else {
        el.textContent = value;
    }
    el.dispatchEvent(new Event('change', {bubbles: true}));
    el.dispatchEvent(new Event('input', {bubbles: true}));
}
"""

_READ_VALUE_JS = "(el) => ('value' in el && typeof el.value === 'string') ? el.value : null"

_CLOSED_MARKERS = ("has been closed", "Target closed", "Target page, context or browser has been closed")


class PlaywrightPageDriver(PageDriver):
    """
    Playwright implementation of PageDriver.

    Example:
        >>> driver = PlaywrightPageDriver(page)
        >>> snapshot = await driver.snapshot()
        >>> await driver.click("/html[1]/body[1]/button[1]")
    """

    def __init__(self, page: "Page", timeout_ms: int = 30000):
        """
        Initialize the driver.

        Args:
            page: Playwright page
            timeout_ms: Default navigation timeout
        """
        self._page = page
        self._timeout_ms = timeout_ms

    @property
    def page(self) -> "Page":
        return self._page

    @property
    def url(self) -> str:
        return self._page.url

    @property
    def context_id(self) -> str:
        return f"page-{id(self._page)}"

    def is_closed(self) -> bool:
        return self._page.is_closed()

    def _locator(self, path: str) -> Any:
        return self._page.locator(f"xpath={path}").first

    def _ensure_open(self) -> None:
        if self._page.is_closed():
            raise PageClosedError("Page has been closed")

    def _translate(self, error: Exception, action: str, path: Optional[str] = None) -> Exception:
        message = str(error)
        if self._page.is_closed() or any(marker in message for marker in _CLOSED_MARKERS):
            return PageClosedError(f"Page closed during {action}")
        if path is not None and "Timeout" in type(error).__name__:
            return ElementNotFoundError(f"Element vanished during {action}", selectors=[[path]])
        return BrowserError(f"{action} failed: {message}", {"path": path} if path else None)

    async def snapshot(self) -> DomSnapshot:
        self._ensure_open()
        try:
            content = await self._page.content()
            title = await self._page.title()
        except Exception as e:
            raise self._translate(e, "snapshot") from e
        return DomSnapshot.from_html(content, url=self._page.url, title=title)

    async def goto(self, url: str, timeout_ms: Optional[int] = None) -> None:
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        self._ensure_open()
        timeout = timeout_ms or self._timeout_ms
        try:
            await self._page.goto(url, timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeoutError(f"Navigation to {url} timed out", url=url, timeout_ms=timeout) from e
        except Exception as e:
            raise self._translate(e, f"navigation to {url}") from e

    async def set_viewport(self, width: int, height: int) -> None:
        self._ensure_open()
        await self._page.set_viewport_size({"width": width, "height": height})

    async def scroll_into_view(self, path: str) -> None:
        self._ensure_open()
        try:
            await self._locator(path).scroll_into_view_if_needed(timeout=self._timeout_ms)
        except Exception as e:
            raise self._translate(e, "scroll", path) from e

    async def bounding_box(self, path: str) -> Optional[BoundingBox]:
        self._ensure_open()
        try:
            box = await self._locator(path).bounding_box()
        except Exception as e:
            raise self._translate(e, "bounding box", path) from e
        if not box:
            return None
        return BoundingBox(x=box["x"], y=box["y"], width=box["width"], height=box["height"])

    async def click(self, path: str) -> None:
        self._ensure_open()
        try:
            await self._locator(path).evaluate("(el) => el.click()")
        except Exception as e:
            raise self._translate(e, "click", path) from e

    async def set_value(self, path: str, value: str) -> None:
        self._ensure_open()
        try:
            await self._locator(path).evaluate(_SET_VALUE_JS, value)
        except Exception as e:
            raise self._translate(e, "change", path) from e

    async def read_value(self, path: str) -> Optional[str]:
        self._ensure_open()
        try:
            return await self._locator(path).evaluate(_READ_VALUE_JS)
        except Exception as e:
            raise self._translate(e, "read value", path) from e

    async def read_text(self, path: str) -> str:
        self._ensure_open()
        try:
            return await self._locator(path).text_content() or ""
        except Exception as e:
            raise self._translate(e, "read text", path) from e
