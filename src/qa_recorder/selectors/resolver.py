"""
Selector Resolver - Find the element a selector set describes.

Schemes are tried in a fixed priority (XPath, ARIA, CSS, Pierce, Text)
regardless of the order they appear in the set. Within one scheme each
group's first selector is tried in set order and the first hit wins.
"""

import asyncio
import logging
import re
import time
from typing import Awaitable, Callable, List, Optional, Union

from cssselect import SelectorError as CSSSyntaxError
from lxml import etree
from lxml.cssselect import CSSSelector
from lxml.html import HtmlElement

from qa_recorder.dom.snapshot import (
    DomSnapshot,
    INTERACTIVE_TAGS,
    is_element,
    normalize_text,
    tag_of,
    text_content,
)
from qa_recorder.exceptions import ElementNotFoundError
from qa_recorder.selectors.models import (
    RESOLUTION_ORDER,
    Selector,
    SelectorScheme,
    SelectorSet,
)

logger = logging.getLogger(__name__)

_ROLE_QUERY = re.compile(r"""^\[role=["']?([^"'\]]+)["']?\]$""")

SnapshotProvider = Callable[[], Awaitable[DomSnapshot]]


def _root_of(target: Union[DomSnapshot, HtmlElement]) -> HtmlElement:
    return target.root if isinstance(target, DomSnapshot) else target


def _first_element(found: object) -> Optional[HtmlElement]:
    if not isinstance(found, list):
        return None
    return next((node for node in found if is_element(node)), None)


class SelectorResolver:
    """
    Resolve selector sets against DOM snapshots.

    Example:
        >>> resolver = SelectorResolver()
        >>> element = resolver.resolve(snapshot, step.selectors)
        >>> element = await resolver.wait_for(driver.snapshot, step.selectors, 5000)
    """

    def __init__(self):
        self._strategies = {
            SelectorScheme.XPATH: self._by_xpath,
            SelectorScheme.ARIA: self._by_aria,
            SelectorScheme.CSS: self._by_css,
            SelectorScheme.PIERCE: self._by_css,
            SelectorScheme.TEXT: self._by_text,
        }

    def resolve(
        self,
        target: Union[DomSnapshot, HtmlElement],
        selector_set: SelectorSet,
    ) -> Optional[HtmlElement]:
        """
        Find the first element matched by the set.

        Args:
            target: Snapshot or root element to search
            selector_set: Selector groups of one step

        Returns:
            Matching element, or None when no selector matches
        """
        root = _root_of(target)
        for scheme in RESOLUTION_ORDER:
            for group in selector_set.by_scheme(scheme):
                element = self.resolve_one(root, group.primary)
                if element is not None:
                    logger.debug(f"Resolved via {group.primary.encode()}")
                    return element
        return None

    def resolve_or_raise(
        self,
        target: Union[DomSnapshot, HtmlElement],
        selector_set: SelectorSet,
    ) -> HtmlElement:
        element = self.resolve(target, selector_set)
        if element is None:
            raise ElementNotFoundError(
                "No selector matched an element",
                selectors=selector_set.to_list(),
            )
        return element

    def resolve_one(self, root: HtmlElement, selector: Selector) -> Optional[HtmlElement]:
        """Resolve a single selector; malformed expressions count as misses."""
        return self._strategies[selector.scheme](root, selector.value)

    async def wait_for(
        self,
        snapshot_provider: SnapshotProvider,
        selector_set: SelectorSet,
        timeout_ms: int,
        poll_interval_ms: int = 100,
    ) -> HtmlElement:
        """
        Poll until the set resolves or the timeout elapses.

        Args:
            snapshot_provider: Coroutine function returning a fresh snapshot
            selector_set: Selector groups of one step
            timeout_ms: Give up after this many milliseconds
            poll_interval_ms: Delay between attempts

        Raises:
            ElementNotFoundError: If nothing matched before the timeout
        """
        deadline = time.monotonic() + timeout_ms / 1000
        while True:
            snapshot = await snapshot_provider()
            element = self.resolve(snapshot, selector_set)
            if element is not None:
                return element
            if time.monotonic() >= deadline:
                break
            await asyncio.sleep(poll_interval_ms / 1000)

        raise ElementNotFoundError(
            f"Timeout waiting for element after {timeout_ms}ms",
            selectors=selector_set.to_list(),
            timeout_ms=timeout_ms,
        )

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _by_xpath(self, root: HtmlElement, expression: str) -> Optional[HtmlElement]:
        try:
            return _first_element(root.getroottree().xpath(expression))
        except etree.XPathError as e:
            logger.debug(f"Invalid XPath {expression!r}: {e}")
            return None

    def _by_css(self, root: HtmlElement, expression: str) -> Optional[HtmlElement]:
        try:
            matcher = CSSSelector(expression)
        except (CSSSyntaxError, etree.XPathError) as e:
            logger.debug(f"Invalid CSS selector {expression!r}: {e}")
            return None
        return _first_element(matcher(root))

    def _by_aria(self, root: HtmlElement, query: str) -> Optional[HtmlElement]:
        role_match = _ROLE_QUERY.match(query)
        if role_match:
            role = role_match.group(1)
            return next(
                (el for el in root.iter() if is_element(el) and el.get("role") == role),
                None,
            )
        for attribute in ("aria-label", "aria-valuetext", "value"):
            for el in root.iter():
                if is_element(el) and el.get(attribute) == query:
                    return el
        return None

    def _by_text(self, root: HtmlElement, text: str) -> Optional[HtmlElement]:
        wanted = normalize_text(text)
        for el in self._interactive_elements(root):
            if wanted in self._texts_of(el):
                return el
        return None

    def _interactive_elements(self, root: HtmlElement) -> List[HtmlElement]:
        return [
            el for el in root.iter()
            if is_element(el) and (
                tag_of(el) in INTERACTIVE_TAGS
                or el.get("role") == "button"
                or el.get("onclick") is not None
            )
        ]

    def _texts_of(self, element: HtmlElement) -> List[str]:
        """Visible text, or value and label for form fields."""
        texts = [text_content(element)]
        if tag_of(element) in ("input", "textarea", "select"):
            texts.append(normalize_text(element.get("value")))
            texts.append(normalize_text(element.get("aria-label")))
            element_id = element.get("id")
            if element_id:
                for label in root_labels(element, element_id):
                    texts.append(text_content(label))
        return [t for t in texts if t]


def root_labels(element: HtmlElement, element_id: str) -> List[HtmlElement]:
    """Labels in the element's document pointing at ``element_id``."""
    root = element.getroottree().getroot()
    return [
        label for label in root.iter("label")
        if label.get("for") == element_id
    ]
