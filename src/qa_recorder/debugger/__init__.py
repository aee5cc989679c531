"""
Debugger Module - DevTools-level input dispatch.
"""

from qa_recorder.debugger.session import DebuggerSession, CDPDebuggerSession

__all__ = [
    "DebuggerSession",
    "CDPDebuggerSession",
]
