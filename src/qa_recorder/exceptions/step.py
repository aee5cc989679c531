"""
Step-related exceptions.
"""

from typing import Optional

from qa_recorder.exceptions.base import QARecorderError


class StepError(QARecorderError):
    """Base exception for errors raised while building or executing a step."""
    pass


class StepValidationError(StepError):
    """
    Step fields are invalid.
    
    Raised when a step is constructed without a selector set where one
    is required, or when a serialized step cannot be decoded.
    """
    
    def __init__(self, message: str, step_type: str):
        super().__init__(message, {"step_type": step_type})
        self.step_type = step_type


class AssertionMismatchError(StepError):
    """
    A value or text expectation did not hold.
    
    Raised by WaitForElement steps when the live element's value or
    text differs from the recorded expectation.
    """
    
    def __init__(self, message: str, expected: Optional[str], actual: Optional[str], field: str = "value"):
        super().__init__(message, {"field": field, "expected": expected, "actual": actual})
        self.expected = expected
        self.actual = actual
        self.field = field
