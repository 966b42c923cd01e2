"""In-memory key-value storage.

Implementation of the KeyValueStorage port for tests and ephemeral sessions.
Uses a dictionary with no external dependencies.
"""

from typing import Dict, Optional


class InMemoryStorage:
    """
    Dictionary-backed KeyValueStorage.

    Persistence: data lost on process restart (in-memory only)

    Example:
        >>> storage = InMemoryStorage()
        >>> storage.set("nutriscan.history", "[]")
        >>> storage.get("nutriscan.history")
        '[]'
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
