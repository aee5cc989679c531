"""
Browser-related exceptions.
"""

from qa_recorder.exceptions.base import QARecorderError


class BrowserError(QARecorderError):
    """Base exception for browser-related errors."""
    pass


class PageClosedError(BrowserError):
    """
    The host page context disappeared.
    
    This is the only failure that aborts a whole replay run.
    """
    pass


class NavigationTimeoutError(BrowserError):
    """
    Navigation did not complete in time.
    
    Raised when a replayed navigation exceeds its timeout or fails
    to load.
    """
    
    def __init__(self, message: str, url: str | None = None, timeout_ms: int | None = None):
        super().__init__(message, {"url": url, "timeout_ms": timeout_ms})
        self.url = url
        self.timeout_ms = timeout_ms


class DebuggerError(BrowserError):
    """Base exception for debugger-session errors."""
    pass


class DebuggerAttachError(DebuggerError):
    """
    Could not attach a debugger session to a page context.
    
    Not fatal: replay degrades to synthetic DOM events.
    """
    
    def __init__(self, message: str, context_id: str):
        super().__init__(message, {"context_id": context_id})
        self.context_id = context_id
