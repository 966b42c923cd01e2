"""History of past estimation results."""

from nutriscan.domain.history.ports import KeyValueStorage
from nutriscan.domain.history.store import HISTORY_CAPACITY, HISTORY_STORAGE_KEY, HistoryStore

__all__ = [
    "HISTORY_CAPACITY",
    "HISTORY_STORAGE_KEY",
    "HistoryStore",
    "KeyValueStorage",
]
