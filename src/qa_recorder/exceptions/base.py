"""
Base exceptions for QA Recorder.
"""


class QARecorderError(Exception):
    """
    Base exception for all QA Recorder errors.
    
    All custom exceptions inherit from this class, making it easy
    to catch any error from the library.
    
    Attributes:
        message: Human-readable error message
        details: Optional additional error details
    """
    
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(QARecorderError):
    """
    Error in configuration.
    
    Raised when there's an issue with settings, environment variables,
    or configuration files.
    """
    pass


class SessionActiveError(QARecorderError):
    """
    A recording or replay session is already active.
    
    Only one recording and one replay session may exist at a time;
    starting a second one fails fast with this error.
    """
    
    def __init__(self, message: str, session_kind: str):
        super().__init__(message, {"session": session_kind})
        self.session_kind = session_kind


class CheckpointError(QARecorderError):
    """Error reading or writing a pending-replay checkpoint."""
    pass


class RecordingFormatError(QARecorderError):
    """
    A recording document has the wrong shape.
    
    Raised on import when the JSON is not a recording object or an
    element check line cannot be parsed.
    """
    pass


class RecordingNotFoundError(QARecorderError):
    """No saved recording has the requested id."""
    
    def __init__(self, recording_id: int):
        super().__init__(f"Recording not found: {recording_id}", {"id": recording_id})
        self.recording_id = recording_id
