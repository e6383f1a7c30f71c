"""Thread-safe metadata index accumulated while an archive is parsed."""

from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Dict, Mapping

from zimswarm.models import IndexEntry


class MetadataIndex:
    """Mapping of article path to :class:`IndexEntry`.

    The parser thread inserts while other threads may read; every access
    holds the same lock, and readers only ever get detached copies.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, IndexEntry] = {}

    def insert(self, path: str, metadata: Mapping[str, str]) -> None:
        """Record metadata for ``path``, replacing any previous entry."""
        entry = IndexEntry(path=path, metadata=metadata)
        with self._lock:
            self._entries[path] = entry

    def snapshot(self) -> Mapping[str, IndexEntry]:
        """Return a read-only copy of the current entries."""
        with self._lock:
            copy = dict(self._entries)
        return MappingProxyType(copy)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._entries
