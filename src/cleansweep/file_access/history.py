"""
Bounded, most-recent-first history of completed file moves.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Iterator, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10


@dataclass(frozen=True)
class FileMoveRecord:
    """A single completed move."""

    file_name: str
    source_dir: str
    destination_path: str
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def source_folder(self) -> str:
        """Name of the directory the file was taken from."""
        return Path(self.source_dir).name

    @property
    def destination_folder(self) -> str:
        """Name of the directory the file now lives in."""
        return Path(self.destination_path).parent.name

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


class MoveHistory:
    """Keep the most recent moves, newest first, evicting the oldest."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """Initialize move history.

        Args:
            capacity: Maximum number of records retained
        """
        if capacity < 1:
            raise ValueError("History capacity must be >= 1")
        self.capacity = capacity
        self._records: List[FileMoveRecord] = []
        self._lock = threading.Lock()

    def record(self, move: FileMoveRecord):
        """Insert a move at the front, dropping the oldest beyond capacity."""
        with self._lock:
            self._records.insert(0, move)
            while len(self._records) > self.capacity:
                evicted = self._records.pop()
                logger.debug(f"Evicted move of {evicted.file_name} from history")

    def clear(self):
        with self._lock:
            self._records.clear()

    def snapshot(self) -> Tuple[FileMoveRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __getitem__(self, index: int) -> FileMoveRecord:
        with self._lock:
            return self._records[index]

    def __iter__(self) -> Iterator[FileMoveRecord]:
        return iter(self.snapshot())
