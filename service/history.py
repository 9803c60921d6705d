"""
In-memory, capped log of generated timetables. The first entry is active.
"""

from typing import List, Optional
import logging
import threading

from models.schemas import TimetableHistoryEntry

logger = logging.getLogger(__name__)


class HistoryEntryNotFound(Exception):
    """Raised when a history entry id is unknown."""


class TimetableHistoryStore:
    """
    Most-recent-first list of history entries, truncated to `limit`.

    Entries are never modified; activating one moves it to the front.
    """

    def __init__(self, limit: int = 10):
        self.limit = limit
        self._entries: List[TimetableHistoryEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: TimetableHistoryEntry) -> None:
        with self._lock:
            self._entries.insert(0, entry)
            dropped = self._entries[self.limit:]
            del self._entries[self.limit:]
        for old in dropped:
            logger.debug(f"Dropped history entry {old.id} beyond limit {self.limit}")

    def list(self) -> List[TimetableHistoryEntry]:
        with self._lock:
            return list(self._entries)

    def active(self) -> Optional[TimetableHistoryEntry]:
        with self._lock:
            return self._entries[0] if self._entries else None

    def get(self, entry_id: str) -> TimetableHistoryEntry:
        with self._lock:
            return self._entries[self._index_of(entry_id)]

    def set_active(self, entry_id: str) -> TimetableHistoryEntry:
        with self._lock:
            entry = self._entries.pop(self._index_of(entry_id))
            self._entries.insert(0, entry)
        logger.info(f"History entry {entry_id} set as active")
        return entry

    def delete(self, entry_id: str) -> None:
        with self._lock:
            del self._entries[self._index_of(entry_id)]
        logger.info(f"History entry {entry_id} deleted")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _index_of(self, entry_id: str) -> int:
        for idx, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return idx
        raise HistoryEntryNotFound(f"History entry '{entry_id}' not found")
