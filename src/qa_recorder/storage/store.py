"""
Recording Store - Saved recordings in a single JSON file.
"""

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from qa_recorder.exceptions import RecordingFormatError, RecordingNotFoundError
from qa_recorder.recorder.steps import Recording, Step
from qa_recorder.storage.recording_io import export_recording, import_recording

logger = logging.getLogger(__name__)


class RecordingStore:
    """
    JSON-file persistence for recordings.

    The file holds a list of exported recordings, newest last. Every
    mutation rewrites the file.

    Example:
        >>> store = RecordingStore("recordings.json")
        >>> store.save(recording)
        >>> [r.title for r in store.list()]
        ['checkout']
        >>> store.delete_step(recording.id, 2)
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _load(self) -> List[Recording]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except ValueError as e:
                raise RecordingFormatError(f"Invalid recordings file {self.path}: {e}") from e
        if not isinstance(data, list):
            raise RecordingFormatError(f"Recordings file {self.path} must contain a list")
        return [import_recording(item) for item in data]

    def _dump(self, recordings: List[Recording]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump([export_recording(r) for r in recordings], f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self.path)

    def list(self) -> List[Recording]:
        return self._load()

    def find(self, recording_id: int) -> Optional[Recording]:
        return next((r for r in self._load() if r.id == recording_id), None)

    def get(self, recording_id: int) -> Recording:
        """
        Get a recording by id.

        Raises:
            RecordingNotFoundError: If no recording has that id
        """
        recording = self.find(recording_id)
        if recording is None:
            raise RecordingNotFoundError(recording_id)
        return recording

    def save(self, recording: Recording) -> None:
        """Insert the recording, or replace the one with the same id."""
        recordings = self._load()
        for i, existing in enumerate(recordings):
            if existing.id == recording.id:
                recordings[i] = recording
                break
        else:
            recordings.append(recording)
        self._dump(recordings)
        logger.info(f"Saved recording {recording.id} ({recording.title}, {len(recording.steps)} steps)")

    def delete(self, recording_id: int) -> None:
        recordings = self._load()
        remaining = [r for r in recordings if r.id != recording_id]
        if len(remaining) == len(recordings):
            raise RecordingNotFoundError(recording_id)
        self._dump(remaining)
        logger.info(f"Deleted recording {recording_id}")

    def delete_step(self, recording_id: int, index: int) -> Step:
        """
        Remove one step from a saved recording.

        Raises:
            RecordingNotFoundError: If no recording has that id
            IndexError: If the index is out of range
        """
        recordings = self._load()
        recording = next((r for r in recordings if r.id == recording_id), None)
        if recording is None:
            raise RecordingNotFoundError(recording_id)
        step = recording.delete_step(index)
        self._dump(recordings)
        logger.info(f"Deleted step {index} ({step.type.value}) from recording {recording_id}")
        return step
