"""
Storage Module - Recording persistence and the exported document shape.
"""

from qa_recorder.storage.recording_io import (
    export_recording,
    import_recording,
    export_json,
    import_json,
    format_check,
    parse_check,
)
from qa_recorder.storage.store import RecordingStore

__all__ = [
    "export_recording",
    "import_recording",
    "export_json",
    "import_json",
    "format_check",
    "parse_check",
    "RecordingStore",
]
