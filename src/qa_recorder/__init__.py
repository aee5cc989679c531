"""
QA Recorder - Record web page interactions and replay them deterministically.

Interactions are captured as a minimal, navigation-aware sequence of
steps whose targets are described by several independent selector
strategies, so replay tolerates drift in the page structure.

Example:
    >>> from qa_recorder import ReplaySession
    >>> session = ReplaySession(page)
    >>> run = await session.replay(recording)
"""

__version__ = "0.1.0"

# Public API exports
from qa_recorder.config.settings import Settings
from qa_recorder.recorder.steps import Recording
from qa_recorder.recorder.recorder import BrowserRecorder
from qa_recorder.replay.orchestrator import ReplayOrchestrator, ReplaySession
from qa_recorder.selectors.resolver import SelectorResolver
from qa_recorder.selectors.synthesizer import SelectorSynthesizer

__all__ = [
    "Settings",
    "Recording",
    "BrowserRecorder",
    "ReplayOrchestrator",
    "ReplaySession",
    "SelectorResolver",
    "SelectorSynthesizer",
    "__version__",
]
