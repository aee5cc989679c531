"""
DOM Module - Parsed page snapshots.
"""

from qa_recorder.dom.snapshot import BoundingBox, DomSnapshot, live_path

__all__ = [
    "BoundingBox",
    "DomSnapshot",
    "live_path",
]
