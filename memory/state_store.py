"""Snapshot persistence for ``PipelineState`` (topic queue + sequence counter).

The automation service restores the last snapshot at startup and saves a new
one after every cycle that changed state. This keeps sequence numbers from
restarting at 1 after a process restart; it is not an exactly-once guarantee.
"""

import json
import threading
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from app.config import PIPELINE_STATE_PATH
from memory.json_file import read_json, write_json_atomic
from pipeline.state import PipelineState

logger = structlog.get_logger(__name__)


class StateStore:
    """Load/save ``PipelineState`` snapshots in a JSON file."""

    def __init__(self, path: Path = PIPELINE_STATE_PATH) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self.logger = logger.bind(path=str(self.path))

    def load(self) -> Optional[PipelineState]:
        """Return the stored snapshot, or ``None`` if absent or unusable."""
        with self._lock:
            try:
                data = read_json(self.path)
            except (OSError, json.JSONDecodeError) as e:
                self.logger.warning("state_store.unreadable", error=str(e))
                return None
            if data is None:
                return None
            try:
                state = PipelineState.model_validate(data)
            except ValidationError as e:
                self.logger.warning("state_store.invalid_snapshot", error=str(e))
                return None
            self.logger.info(
                "state_store.restored",
                topics=len(state.topics),
                last_sequence=state.last_sequence,
            )
            return state

    def save(self, state: PipelineState) -> None:
        """Write *state*. Raises ``OSError`` if the file cannot be written."""
        with self._lock:
            write_json_atomic(self.path, state.model_dump(mode="json"))
            self.logger.debug("state_store.saved", last_sequence=state.last_sequence)
