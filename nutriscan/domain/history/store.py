"""
Bounded, persisted history of aggregated results.

The whole history is one JSON array stored under a single key, most recent
entry first. Capacity is enforced on every insert.
"""

from __future__ import annotations

import json
import threading
from typing import Any, List

import structlog
from pydantic import ValidationError as PydanticValidationError

from nutriscan.domain.estimation.models import AggregatedResult
from nutriscan.domain.history.ports import KeyValueStorage

logger = structlog.get_logger(__name__)

HISTORY_STORAGE_KEY = "nutriscan.history"
HISTORY_CAPACITY = 20


class HistoryStore:
    """
    Most-recent-first list of AggregatedResult, at most 20 entries.

    Loaded once at construction, written back on every mutation. Mutations
    hold a lock for the whole read-modify-write.

    Example:
        >>> store = HistoryStore(InMemoryStorage())
        >>> store.record(result)
        >>> store.list()[0] == result
        True
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        capacity: int = HISTORY_CAPACITY,
        key: str = HISTORY_STORAGE_KEY,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._storage = storage
        self._capacity = capacity
        self._key = key
        self._lock = threading.Lock()
        self._entries: List[AggregatedResult] = self._load()

    def record(self, result: AggregatedResult) -> None:
        """
        Prepend a result, evicting entries beyond capacity.

        Args:
            result: Result to store

        Raises:
            StorageError: If the updated history cannot be persisted
        """
        with self._lock:
            entries = [result, *self._entries]
            evicted = len(entries) - self._capacity
            entries = entries[: self._capacity]
            self._persist(entries)
            self._entries = entries

        logger.info(
            "History entry recorded",
            food_name=result.food_name,
            size=len(entries),
            evicted=max(evicted, 0),
        )

    def list(self) -> List[AggregatedResult]:
        """Entries, most recent first. The returned list is a copy."""
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        """
        Remove every entry.

        Raises:
            StorageError: If the storage key cannot be deleted
        """
        with self._lock:
            self._storage.delete(self._key)
            self._entries = []
        logger.info("History cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ═══════════════════════════════════════════════════════════
    # SERIALIZATION
    # ═══════════════════════════════════════════════════════════

    def _persist(self, entries: List[AggregatedResult]) -> None:
        blob = json.dumps(
            [entry.model_dump(mode="json") for entry in entries],
            ensure_ascii=False,
        )
        self._storage.set(self._key, blob)

    def _load(self) -> List[AggregatedResult]:
        blob = self._storage.get(self._key)
        if blob is None:
            return []

        try:
            records: Any = json.loads(blob)
        except json.JSONDecodeError as exc:
            logger.warning("History blob unreadable, starting empty", error=str(exc))
            return []

        if not isinstance(records, list):
            logger.warning("History blob is not a list, starting empty", type=type(records).__name__)
            return []

        entries: List[AggregatedResult] = []
        for index, record in enumerate(records):
            try:
                entries.append(AggregatedResult.model_validate(record))
            except PydanticValidationError as exc:
                logger.warning("Skipping invalid history record", index=index, errors=exc.error_count())

        if len(entries) > self._capacity:
            entries = entries[: self._capacity]

        logger.debug("History loaded", size=len(entries))
        return entries
