"""
Selector Models - Tagged selector variants and their groupings.

A selector string carries its scheme as a prefix (``xpath//``, ``aria/``,
``text/``, ``pierce/``; bare strings are CSS). The prefix is parsed once
into a ``Selector`` so the resolver dispatches on the scheme rather than
sniffing strings.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Sequence, Tuple

from qa_recorder.exceptions import InvalidSelectorSyntaxError


class SelectorScheme(str, Enum):
    """Strategy families for locating an element."""
    CSS = "css"
    XPATH = "xpath"
    ARIA = "aria"
    TEXT = "text"
    PIERCE = "pierce"


# Resolution order, independent of the order a set was synthesized in
RESOLUTION_ORDER: Tuple[SelectorScheme, ...] = (
    SelectorScheme.XPATH,
    SelectorScheme.ARIA,
    SelectorScheme.CSS,
    SelectorScheme.PIERCE,
    SelectorScheme.TEXT,
)

# XPath values keep their leading slash: "xpath" + "//div[@id='a']"
_PREFIXES = {
    SelectorScheme.XPATH: "xpath",
    SelectorScheme.ARIA: "aria/",
    SelectorScheme.TEXT: "text/",
    SelectorScheme.PIERCE: "pierce/",
}


@dataclass(frozen=True)
class Selector:
    """
    A single locator.
    
    Attributes:
        scheme: Strategy family
        value: Scheme-specific expression (XPath, CSS, ARIA query or text)
    """
    scheme: SelectorScheme
    value: str
    
    @classmethod
    def parse(cls, raw: str) -> "Selector":
        """Parse an encoded selector string."""
        if not isinstance(raw, str) or not raw:
            raise InvalidSelectorSyntaxError("Selector must be a non-empty string", selector=str(raw))
        for scheme, prefix in _PREFIXES.items():
            if scheme == SelectorScheme.XPATH and not raw.startswith(("xpath/", "xpath(")):
                continue
            if raw.startswith(prefix):
                value = raw[len(prefix):]
                if not value:
                    raise InvalidSelectorSyntaxError(f"Empty {scheme.value} selector", selector=raw)
                return cls(scheme, value)
        return cls(SelectorScheme.CSS, raw)
    
    @classmethod
    def css(cls, value: str) -> "Selector":
        return cls(SelectorScheme.CSS, value)
    
    @classmethod
    def xpath(cls, value: str) -> "Selector":
        return cls(SelectorScheme.XPATH, value)
    
    @classmethod
    def aria(cls, value: str) -> "Selector":
        return cls(SelectorScheme.ARIA, value)
    
    @classmethod
    def text(cls, value: str) -> "Selector":
        return cls(SelectorScheme.TEXT, value)
    
    @classmethod
    def pierce(cls, value: str) -> "Selector":
        return cls(SelectorScheme.PIERCE, value)
    
    def encode(self) -> str:
        """Encode back to the prefixed string form."""
        return _PREFIXES.get(self.scheme, "") + self.value
    
    def __str__(self) -> str:
        return self.encode()


@dataclass(frozen=True)
class SelectorGroup:
    """
    Interchangeable selectors describing one target.
    
    The group's scheme is the scheme of its first selector.
    """
    selectors: Tuple[Selector, ...]
    
    def __post_init__(self) -> None:
        if not self.selectors:
            raise InvalidSelectorSyntaxError("Selector group must not be empty", selector="")
    
    @classmethod
    def of(cls, *selectors: Selector) -> "SelectorGroup":
        return cls(tuple(selectors))
    
    @classmethod
    def parse(cls, raw: Sequence[str]) -> "SelectorGroup":
        if isinstance(raw, str):
            raw = [raw]
        return cls(tuple(Selector.parse(s) for s in raw))
    
    @property
    def scheme(self) -> SelectorScheme:
        return self.selectors[0].scheme
    
    @property
    def primary(self) -> Selector:
        return self.selectors[0]
    
    def to_list(self) -> List[str]:
        return [s.encode() for s in self.selectors]


@dataclass(frozen=True)
class SelectorSet:
    """Ordered collection of selector groups attached to a step."""
    groups: Tuple[SelectorGroup, ...] = ()
    
    @classmethod
    def of(cls, groups: Iterable[SelectorGroup]) -> "SelectorSet":
        return cls(tuple(groups))
    
    @classmethod
    def from_list(cls, raw: Sequence[Sequence[str]]) -> "SelectorSet":
        """Decode the serialized list-of-lists form, skipping empty groups."""
        return cls(tuple(SelectorGroup.parse(group) for group in raw or [] if group))
    
    def to_list(self) -> List[List[str]]:
        return [group.to_list() for group in self.groups]
    
    def by_scheme(self, scheme: SelectorScheme) -> List[SelectorGroup]:
        return [group for group in self.groups if group.scheme == scheme]
    
    def first(self, scheme: SelectorScheme) -> Selector | None:
        groups = self.by_scheme(scheme)
        return groups[0].primary if groups else None
    
    def __iter__(self) -> Iterator[SelectorGroup]:
        return iter(self.groups)
    
    def __len__(self) -> int:
        return len(self.groups)
    
    def __bool__(self) -> bool:
        return bool(self.groups)
