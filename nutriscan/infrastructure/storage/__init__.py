"""Key-value storage adapters."""

from nutriscan.infrastructure.storage.factory import create_storage
from nutriscan.infrastructure.storage.in_memory_storage import InMemoryStorage
from nutriscan.infrastructure.storage.json_file_storage import JsonFileStorage

__all__ = [
    "InMemoryStorage",
    "JsonFileStorage",
    "create_storage",
]
