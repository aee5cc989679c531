"""
Selectors Module - Synthesize and resolve element locators.
"""

from qa_recorder.selectors.models import (
    SelectorScheme,
    Selector,
    SelectorGroup,
    SelectorSet,
    RESOLUTION_ORDER,
)
from qa_recorder.selectors.synthesizer import SelectorSynthesizer, xpath_literal
from qa_recorder.selectors.resolver import SelectorResolver

__all__ = [
    "SelectorScheme",
    "Selector",
    "SelectorGroup",
    "SelectorSet",
    "RESOLUTION_ORDER",
    "SelectorSynthesizer",
    "SelectorResolver",
    "xpath_literal",
]
