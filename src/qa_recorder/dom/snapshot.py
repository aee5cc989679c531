"""
DOM Snapshot - An lxml view of the page's element tree.

The selector engine works on a parsed snapshot of the live DOM rather than
on browser handles, so synthesis and resolution are plain functions of the
element tree. Nodes are mapped back to the live page through their
absolute XPath.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from lxml import etree, html
from lxml.html import HtmlElement


INTERACTIVE_TAGS = frozenset({"button", "a", "input", "select", "textarea"})
VECTOR_TAG = "svg"


def is_element(node: object) -> bool:
    """True for element nodes (comments and PIs carry non-string tags)."""
    return isinstance(getattr(node, "tag", None), str)


def tag_of(element: HtmlElement) -> str:
    """Lower-case local tag name."""
    return etree.QName(element).localname.lower()


def normalize_text(value: Optional[str]) -> str:
    """Collapse runs of whitespace and trim."""
    return " ".join(value.split()) if value else ""


def element_children(element: HtmlElement) -> List[HtmlElement]:
    return [child for child in element if is_element(child)]


def previous_element(element: HtmlElement) -> Optional[HtmlElement]:
    sibling = element.getprevious()
    while sibling is not None and not is_element(sibling):
        sibling = sibling.getprevious()
    return sibling


def preceding_elements(element: HtmlElement) -> Iterator[HtmlElement]:
    """Element siblings before ``element``, nearest first."""
    sibling = previous_element(element)
    while sibling is not None:
        yield sibling
        sibling = previous_element(sibling)


def ancestors(element: HtmlElement) -> Iterator[HtmlElement]:
    """Element ancestors, nearest first."""
    for ancestor in element.iterancestors():
        if is_element(ancestor):
            yield ancestor


def same_tag_siblings(element: HtmlElement) -> List[HtmlElement]:
    parent = element.getparent()
    if parent is None:
        return [element]
    tag = tag_of(element)
    return [child for child in element_children(parent) if tag_of(child) == tag]


def same_tag_index(element: HtmlElement) -> int:
    """1-based position among siblings sharing the element's tag."""
    return same_tag_siblings(element).index(element) + 1


def direct_text(element: HtmlElement) -> str:
    """First non-empty text node owned by the element itself, normalized."""
    for value in [element.text, *(child.tail for child in element)]:
        text = normalize_text(value)
        if text:
            return text
    return ""


def text_content(element: HtmlElement) -> str:
    return normalize_text(element.text_content())


def first_text(
    element: HtmlElement,
    max_length: Optional[int] = None,
    exclude: Optional[HtmlElement] = None,
) -> str:
    """
    First non-empty descendant text node, whitespace-normalized.
    
    Args:
        element: Subtree root to search
        max_length: Skip text nodes at or above this length
        exclude: Subtree whose text nodes are ignored
    """
    for node in element.xpath(".//text()"):
        text = normalize_text(str(node))
        if not text:
            continue
        if max_length is not None and len(text) >= max_length:
            continue
        owner = node.getparent()
        if getattr(node, "is_tail", False) and owner is not None:
            owner = owner.getparent()
        if exclude is not None and owner is not None and (
            owner is exclude or any(a is exclude for a in ancestors(owner))
        ):
            continue
        return text
    return ""


def is_inside_vector_graphic(element: HtmlElement) -> bool:
    if tag_of(element) == VECTOR_TAG:
        return True
    return any(tag_of(a) == VECTOR_TAG for a in ancestors(element))


def vector_graphic_root(element: HtmlElement) -> Optional[HtmlElement]:
    """Outermost ``svg`` containing (or being) the element."""
    root = element if tag_of(element) == VECTOR_TAG else None
    for ancestor in ancestors(element):
        if tag_of(ancestor) == VECTOR_TAG:
            root = ancestor
    return root


def path_segment(element: HtmlElement) -> str:
    """
    One position-indexed XPath step for the element.
    
    Steps inside an ``svg`` use ``local-name()`` because browsers place
    those elements in the SVG namespace.
    """
    tag = tag_of(element)
    index = same_tag_index(element)
    if is_inside_vector_graphic(element):
        return f"*[local-name()='{tag}'][{index}]"
    return f"{tag}[{index}]"


def live_path(element: HtmlElement) -> str:
    """Absolute XPath usable against the live browser DOM."""
    segments = []
    node: Optional[HtmlElement] = element
    while node is not None and is_element(node):
        segments.append(path_segment(node))
        node = node.getparent()
    return "/" + "/".join(reversed(segments))


@dataclass
class BoundingBox:
    """Element rectangle in viewport coordinates."""
    x: float
    y: float
    width: float
    height: float
    
    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2


@dataclass
class DomSnapshot:
    """
    Parsed copy of a page's DOM at one point in time.
    
    Attributes:
        root: Root element of the parsed document
        url: Page URL when the snapshot was taken
        title: Page title when the snapshot was taken
    """
    root: HtmlElement
    url: str = ""
    title: str = ""
    
    @classmethod
    def from_html(cls, content: str, url: str = "", title: Optional[str] = None) -> "DomSnapshot":
        """Parse serialized page HTML into a snapshot."""
        root = html.document_fromstring(content or "<html><body></body></html>")
        if title is None:
            found = root.find(".//title")
            title = normalize_text(found.text_content()) if found is not None else ""
        return cls(root=root, url=url, title=title)
    
    def path_of(self, element: HtmlElement) -> str:
        """Absolute XPath of an element in this snapshot."""
        return live_path(element)
    
    def element_at(self, path: str) -> Optional[HtmlElement]:
        """Element at an absolute XPath, or None."""
        try:
            found = self.root.getroottree().xpath(path)
        except etree.XPathError:
            return None
        for node in found:
            if is_element(node):
                return node
        return None
