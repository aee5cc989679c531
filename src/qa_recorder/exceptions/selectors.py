"""
Selector-related exceptions.
"""

from typing import List, Optional

from qa_recorder.exceptions.base import QARecorderError


class SelectorError(QARecorderError):
    """Base exception for selector synthesis and resolution errors."""
    pass


class InvalidSelectorSyntaxError(SelectorError):
    """
    A selector string could not be parsed or evaluated.
    
    The resolver treats this as a non-match for the offending candidate;
    it is never surfaced from a resolution call.
    """
    
    def __init__(self, message: str, selector: str):
        super().__init__(message, {"selector": selector})
        self.selector = selector


class ElementNotFoundError(SelectorError):
    """
    No candidate of a selector set matched a live element.
    
    Raised by the resolver's wait when the timeout elapses, and by
    steps that require an element to be present.
    """
    
    def __init__(
        self,
        message: str,
        selectors: Optional[List[List[str]]] = None,
        timeout_ms: Optional[int] = None,
    ):
        super().__init__(message, {"selectors": selectors, "timeout_ms": timeout_ms})
        self.selectors = selectors or []
        self.timeout_ms = timeout_ms
