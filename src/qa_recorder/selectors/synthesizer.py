"""
Selector Synthesizer - Turn a DOM element into ranked locator strategies.

For each enabled scheme the synthesizer produces at most one selector
group. XPath gets the most attention: it is tried first on replay, so it
encodes the page author's test identifiers, nearby label and list text,
and only falls back to a positional path when nothing stable exists.
"""

import logging
import re
from typing import Callable, Dict, Iterable, Optional, Tuple

from lxml.html import HtmlElement

from qa_recorder.dom.snapshot import (
    ancestors,
    direct_text,
    first_text,
    is_element,
    is_inside_vector_graphic,
    path_segment,
    preceding_elements,
    previous_element,
    same_tag_index,
    same_tag_siblings,
    tag_of,
    normalize_text,
    text_content,
    vector_graphic_root,
    VECTOR_TAG,
)
from qa_recorder.selectors.models import (
    Selector,
    SelectorGroup,
    SelectorScheme,
    SelectorSet,
)

logger = logging.getLogger(__name__)

_CSS_IDENTIFIER = re.compile(r"^-?[_a-zA-Z][_a-zA-Z0-9-]*$")
_EDITABLE_TAGS = ("input", "textarea")
_CHANGE_EVENTS = ("change", "input")


def xpath_literal(value: str) -> str:
    """Quote a string for use inside an XPath 1.0 expression."""
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    parts = value.split("'")
    return "concat(" + ", \"'\", ".join(f"'{part}'" for part in parts) + ")"


def css_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def text_predicate(text: str) -> str:
    """Predicate matching a descendant text node with the given normalized text."""
    return f".//text()[normalize-space()={xpath_literal(text)}]"


class SelectorSynthesizer:
    """
    Generate selector sets for elements.

    Example:
        >>> synthesizer = SelectorSynthesizer()
        >>> selector_set = synthesizer.synthesize(element, ["xpath", "css"])
        >>> selector_set.to_list()
        [["xpath//*[@id='save']"], ["#save"]]
    """

    def __init__(
        self,
        test_id_attribute: str = "data-testid",
        text_max_length: int = 50,
        max_path_depth: int = 5,
    ):
        self.test_id_attribute = test_id_attribute
        self.text_max_length = text_max_length
        self.max_path_depth = max_path_depth
        self._builders: Dict[SelectorScheme, Callable[[HtmlElement, Optional[str]], Optional[Selector]]] = {
            SelectorScheme.CSS: self._css,
            SelectorScheme.XPATH: self._xpath,
            SelectorScheme.ARIA: self._aria,
            SelectorScheme.TEXT: self._text,
            SelectorScheme.PIERCE: self._pierce,
        }

    def synthesize(
        self,
        element: HtmlElement,
        schemes: Iterable[str],
        event_type: Optional[str] = None,
    ) -> SelectorSet:
        """
        Build a selector set for an element.

        Args:
            element: Target element in a DOM snapshot
            schemes: Enabled schemes, in the order groups should appear
            event_type: Capture kind; ``change`` drops text predicates
                because the text is about to be overwritten

        Returns:
            Selector set with at most one group per scheme
        """
        groups = []
        for name in dict.fromkeys(schemes):
            scheme = SelectorScheme(name)
            selector = self._builders[scheme](element, event_type)
            if selector is not None:
                groups.append(SelectorGroup.of(selector))
        return SelectorSet.of(groups)

    # ------------------------------------------------------------------
    # Element classification
    # ------------------------------------------------------------------

    def _test_id(self, element: HtmlElement) -> Optional[str]:
        return element.get(self.test_id_attribute) or None

    def _id_predicate(self, value: str) -> str:
        return f"@{self.test_id_attribute}={xpath_literal(value)}"

    def _is_list_item(self, element: HtmlElement) -> bool:
        if tag_of(element) == "li" or element.get("role") == "listitem":
            return True
        test_id = (self._test_id(element) or "").lower()
        return "list-item" in test_id or "listitem" in test_id

    def _is_checkbox(self, element: HtmlElement) -> bool:
        test_id = self._test_id(element)
        if not test_id:
            return False
        if tag_of(element) == "input" and (element.get("type") or "").lower() in ("checkbox", "radio"):
            return True
        if element.get("role") in ("checkbox", "radio"):
            return True
        lowered = test_id.lower()
        return "checkbox" in lowered or "radio" in lowered

    def _checkbox_within(self, element: HtmlElement) -> Optional[HtmlElement]:
        for descendant in element.iterdescendants():
            if is_element(descendant) and self._is_checkbox(descendant):
                return descendant
        return None

    def _list_item_above(self, element: HtmlElement) -> Optional[HtmlElement]:
        return next((a for a in ancestors(element) if self._is_list_item(a)), None)

    def _nearest_identified(self, element: HtmlElement, inclusive: bool = True) -> Optional[HtmlElement]:
        if inclusive and self._test_id(element):
            return element
        return next((a for a in ancestors(element) if self._test_id(a)), None)

    # ------------------------------------------------------------------
    # CSS / Pierce
    # ------------------------------------------------------------------

    def css_path(self, element: HtmlElement) -> str:
        """Ancestor-qualified ``tag.class:nth-of-type(n)`` path."""
        element_id = element.get("id")
        if element_id:
            if _CSS_IDENTIFIER.match(element_id):
                return f"#{element_id}"
            return f"[id={css_string(element_id)}]"

        test_id = self._test_id(element)
        if test_id:
            return f"[{self.test_id_attribute}={css_string(test_id)}]"

        path = []
        node: Optional[HtmlElement] = element
        while node is not None and is_element(node) and len(path) < self.max_path_depth:
            segment = tag_of(node)
            classes = [c for c in (node.get("class") or "").split() if _CSS_IDENTIFIER.match(c)]
            if classes:
                segment += "." + ".".join(classes)
            if len(same_tag_siblings(node)) > 1:
                segment += f":nth-of-type({same_tag_index(node)})"
            path.insert(0, segment)
            node = node.getparent()
        return " > ".join(path)

    def _css(self, element: HtmlElement, event_type: Optional[str]) -> Optional[Selector]:
        return Selector.css(self.css_path(element))

    def _pierce(self, element: HtmlElement, event_type: Optional[str]) -> Optional[Selector]:
        return Selector.pierce(self.css_path(element))

    # ------------------------------------------------------------------
    # ARIA / Text
    # ------------------------------------------------------------------

    def _aria(self, element: HtmlElement, event_type: Optional[str]) -> Optional[Selector]:
        role = element.get("role")
        if role:
            return Selector.aria(f'[role="{role}"]')
        label = element.get("aria-label")
        if label:
            return Selector.aria(label)
        value = element.get("aria-valuetext") or element.get("value")
        if value:
            return Selector.aria(value)
        return None

    def _text(self, element: HtmlElement, event_type: Optional[str]) -> Optional[Selector]:
        text = text_content(element)
        if text and len(text) < self.text_max_length:
            return Selector.text(text)
        return None

    # ------------------------------------------------------------------
    # XPath
    # ------------------------------------------------------------------

    def _xpath(self, element: HtmlElement, event_type: Optional[str]) -> Optional[Selector]:
        expression = self.xpath_expression(element, event_type)
        return Selector.xpath(expression) if expression else None

    def xpath_expression(self, element: HtmlElement, event_type: Optional[str] = None) -> str:
        """Apply the XPath rules in order; the first that produces an expression wins."""
        rules: Tuple[Callable[[HtmlElement, Optional[str]], Optional[str]], ...] = (
            self._xpath_vector_graphic,
            self._xpath_literal_id,
            self._xpath_list_checkbox,
            self._xpath_labelled_field,
            self._xpath_text_div,
            self._xpath_identified_ancestor,
        )
        for rule in rules:
            expression = rule(element, event_type)
            if expression:
                logger.debug(f"XPath rule {rule.__name__} -> {expression}")
                return expression
        return self._xpath_positional(element)

    def _list_checkbox_xpath(self, list_item: HtmlElement, checkbox: HtmlElement) -> Optional[str]:
        text = first_text(list_item, max_length=self.text_max_length, exclude=checkbox)
        if not text:
            return None
        item_predicate = text_predicate(text)
        item_id = self._test_id(list_item)
        if item_id:
            item_predicate = f"{self._id_predicate(item_id)} and {item_predicate}"
        checkbox_predicate = self._id_predicate(self._test_id(checkbox) or "")
        if tag_of(checkbox) == "input" and (checkbox.get("type") or "").lower() == "radio":
            checkbox_predicate += " and @type='radio'"
        return f"//{tag_of(list_item)}[{item_predicate}]//*[{checkbox_predicate}]"

    def _xpath_vector_graphic(self, element: HtmlElement, event_type: Optional[str]) -> Optional[str]:
        if not is_inside_vector_graphic(element):
            return None

        # Icon inside a checkbox row: target the checkbox through the row text
        checkbox = element if self._is_checkbox(element) else next(
            (a for a in ancestors(element) if self._is_checkbox(a)), None
        )
        if checkbox is not None:
            list_item = self._list_item_above(checkbox)
            if list_item is not None:
                expression = self._list_checkbox_xpath(list_item, checkbox)
                if expression:
                    return expression

        svg = vector_graphic_root(element)
        anchor = self._nearest_identified(svg, inclusive=False) if svg is not None else None
        if anchor is None:
            return None
        svg_predicate = f"local-name()='{VECTOR_TAG}'"
        svg_id = self._test_id(svg)
        if svg_id:
            svg_predicate += f" and {self._id_predicate(svg_id)}"
        anchor_id = self._test_id(anchor) or ""
        return f"//{tag_of(anchor)}[{self._id_predicate(anchor_id)} and .//*[{svg_predicate}]]"

    def _xpath_literal_id(self, element: HtmlElement, event_type: Optional[str]) -> Optional[str]:
        element_id = element.get("id")
        if element_id:
            return f"//*[@id={xpath_literal(element_id)}]"
        return None

    def _xpath_list_checkbox(self, element: HtmlElement, event_type: Optional[str]) -> Optional[str]:
        if self._is_checkbox(element):
            list_item = self._list_item_above(element)
            checkbox: Optional[HtmlElement] = element
        elif self._is_list_item(element):
            list_item = element
            checkbox = self._checkbox_within(element)
        else:
            list_item = self._list_item_above(element)
            checkbox = None
            if list_item is not None:
                checkbox = next(
                    (a for a in ancestors(element) if a is not list_item and self._is_checkbox(a)),
                    None,
                ) or self._checkbox_within(list_item)
        if list_item is None or checkbox is None:
            return None
        return self._list_checkbox_xpath(list_item, checkbox)

    def _label_text(self, label: HtmlElement) -> str:
        text = text_content(label)
        if text.endswith("*"):
            text = normalize_text(text[:-1])
        return text

    def _xpath_labelled_field(self, element: HtmlElement, event_type: Optional[str]) -> Optional[str]:
        tag = tag_of(element)
        editable = tag in _EDITABLE_TAGS or (
            tag == "div" and element.get("contenteditable") not in (None, "false")
        )
        test_id = self._test_id(element)
        if not editable or not test_id:
            return None

        label = next((s for s in preceding_elements(element) if tag_of(s) == "label"), None)
        if label is None:
            return None
        text = self._label_text(label)
        if not text:
            return None

        # The rendered label may still carry the required-field marker
        matches = " or ".join(
            f"normalize-space(.)={xpath_literal(candidate)}"
            for candidate in (text, f"{text}*", f"{text} *")
        )
        return f"//label[{matches}]/following-sibling::*[{self._id_predicate(test_id)}]"

    def _xpath_text_div(self, element: HtmlElement, event_type: Optional[str]) -> Optional[str]:
        test_id = self._test_id(element)
        if tag_of(element) != "div" or not test_id:
            return None
        before = previous_element(element)
        if before is not None and tag_of(before) == "label":
            return None

        in_list = any(tag_of(a) == "li" for a in ancestors(element))
        own_text = direct_text(element)
        if not in_list and not own_text:
            return None

        base = "//li//div" if in_list else "//div"
        if event_type in _CHANGE_EVENTS:
            return f"{base}[{self._id_predicate(test_id)}]"
        if own_text and len(own_text) < self.text_max_length:
            text = own_text
        else:
            text = first_text(element, max_length=self.text_max_length)
        if text:
            return f"{base}[{self._id_predicate(test_id)} and {text_predicate(text)}]"
        return f"{base}[{self._id_predicate(test_id)}]"

    def _xpath_identified_ancestor(self, element: HtmlElement, event_type: Optional[str]) -> Optional[str]:
        anchor = self._nearest_identified(element)
        if anchor is None:
            return None
        tag = tag_of(anchor)
        anchor_id = self._test_id(anchor) or ""
        id_predicate = self._id_predicate(anchor_id)

        if event_type not in _CHANGE_EVENTS:
            text = first_text(anchor, max_length=self.text_max_length)
            if text:
                return f"//{tag}[{id_predicate} and {text_predicate(text)}]"

        for descendant in anchor.iterdescendants():
            if is_element(descendant) and tag_of(descendant) == VECTOR_TAG and self._test_id(descendant):
                svg_id = self._test_id(descendant) or ""
                return (
                    f"//{tag}[{id_predicate} and "
                    f".//*[local-name()='{VECTOR_TAG}' and {self._id_predicate(svg_id)}]]"
                )

        outer = next(
            (a for a in ancestors(anchor) if self._test_id(a) and self._test_id(a) != anchor_id),
            None,
        )
        if outer is not None:
            outer_id = self._test_id(outer) or ""
            return f"//{tag_of(outer)}[{self._id_predicate(outer_id)}]//{tag}[{id_predicate}]"

        return f"//{tag}[{id_predicate}]"

    def _xpath_positional(self, element: HtmlElement) -> str:
        segments = []
        node: Optional[HtmlElement] = element
        while node is not None and is_element(node) and len(segments) < self.max_path_depth:
            segments.insert(0, path_segment(node))
            node = node.getparent()
        return "//" + "/".join(segments)
