"""Storage factory.

Backend selection from settings:
- NUTRISCAN_HISTORY_BACKEND=file (default): JSON file at NUTRISCAN_HISTORY_PATH
- NUTRISCAN_HISTORY_BACKEND=memory: transient, for tests and dry runs
"""

from nutriscan.config import Settings
from nutriscan.domain.history.ports import KeyValueStorage
from nutriscan.domain.shared.errors import ConfigurationError
from nutriscan.infrastructure.storage.in_memory_storage import InMemoryStorage
from nutriscan.infrastructure.storage.json_file_storage import JsonFileStorage


def create_storage(settings: Settings) -> KeyValueStorage:
    """Create the key-value storage selected by settings.

    Raises:
        ConfigurationError: If the backend is unknown
    """
    backend = settings.history_backend.lower()

    if backend == "memory":
        return InMemoryStorage()

    if backend == "file":
        return JsonFileStorage(settings.history_path)

    raise ConfigurationError(
        f"Unknown history backend '{backend}'. Use NUTRISCAN_HISTORY_BACKEND=file or memory"
    )
