"""
Key-value storage interface.

Protocol for the externally-backed key space the history blob lives in.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStorage(Protocol):
    """
    String key to string value storage.

    Implementations must provide:
    - Read of a missing key returns None
    - set/delete are durable once they return

    Example:
        >>> storage = JsonFileStorage(Path("~/.nutriscan/storage.json"))
        >>> storage.set("nutriscan.history", "[]")
        >>> storage.get("nutriscan.history")
        '[]'
    """

    def get(self, key: str) -> Optional[str]:
        """
        Read a value.

        Args:
            key: Storage key

        Returns:
            Stored string, None if the key is absent
        """
        ...

    def set(self, key: str, value: str) -> None:
        """
        Write a value, replacing any previous one.

        Raises:
            StorageError: On write failure
        """
        ...

    def delete(self, key: str) -> None:
        """
        Remove a key. Missing keys are ignored.

        Raises:
            StorageError: On write failure
        """
        ...
