"""
Pytest configuration and fixtures.
"""

from typing import Dict, List, Optional, Tuple

import pytest

from qa_recorder.dom.snapshot import BoundingBox, DomSnapshot


@pytest.fixture
def settings():
    """Provide test settings with no inter-step delay."""
    from qa_recorder.config import Settings, ReplaySettings

    return Settings(
        replay=ReplaySettings(
            speed="fast",
            timeout_ms=200,
            poll_interval_ms=10,
            settle_ms=0,
            use_debugger=False,
        ),
    )


@pytest.fixture
def make_snapshot():
    """Build a DomSnapshot from an HTML body fragment."""
    def _make(body: str, url: str = "https://example.com/") -> DomSnapshot:
        return DomSnapshot.from_html(f"<html><head><title>Test</title></head><body>{body}</body></html>", url=url)
    return _make


class FakePageDriver:
    """
    In-memory page driver over lxml snapshots.

    Each call to ``snapshot()`` parses the next HTML document in
    ``pages`` (the last one repeats), so tests can make elements appear
    over time. Interactions are recorded in ``actions``.
    """

    def __init__(self, pages: List[str], url: str = "https://example.com/"):
        self.pages = list(pages)
        self._url = url
        self._closed = False
        self.actions: List[Tuple] = []
        self.values: Dict[str, Optional[str]] = {}
        self.texts: Dict[str, str] = {}
        self.boxes: Dict[str, BoundingBox] = {}
        self.snapshots_taken = 0
        self.fail_goto: Optional[Exception] = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def context_id(self) -> str:
        return "page-test"

    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def _check_open(self) -> None:
        from qa_recorder.exceptions import PageClosedError
        if self._closed:
            raise PageClosedError("Page has been closed")

    async def snapshot(self) -> DomSnapshot:
        self._check_open()
        index = min(self.snapshots_taken, len(self.pages) - 1)
        self.snapshots_taken += 1
        return DomSnapshot.from_html(self.pages[index], url=self._url)

    async def goto(self, url: str, timeout_ms: Optional[int] = None) -> None:
        self._check_open()
        self.actions.append(("goto", url))
        if self.fail_goto is not None:
            raise self.fail_goto
        self._url = url

    async def set_viewport(self, width: int, height: int) -> None:
        self._check_open()
        self.actions.append(("viewport", width, height))

    async def scroll_into_view(self, path: str) -> None:
        self._check_open()
        self.actions.append(("scroll", path))

    async def bounding_box(self, path: str) -> Optional[BoundingBox]:
        return self.boxes.get(path, BoundingBox(x=10, y=20, width=100, height=40))

    async def click(self, path: str) -> None:
        self._check_open()
        self.actions.append(("click", path))

    async def set_value(self, path: str, value: str) -> None:
        self._check_open()
        self.actions.append(("set_value", path, value))
        self.values[path] = value

    async def read_value(self, path: str) -> Optional[str]:
        return self.values.get(path)

    async def read_text(self, path: str) -> str:
        return self.texts.get(path, "")


def page_html(body: str) -> str:
    return f"<html><head><title>Test</title></head><body>{body}</body></html>"


@pytest.fixture
def fake_driver():
    """Factory for FakePageDriver instances over body fragments."""
    def _make(*bodies: str) -> FakePageDriver:
        return FakePageDriver([page_html(body) for body in bodies])
    return _make
