"""Tests for create_storage()."""

import pytest

from nutriscan.config import Settings
from nutriscan.domain.shared.errors import ConfigurationError
from nutriscan.infrastructure.storage.factory import create_storage
from nutriscan.infrastructure.storage.in_memory_storage import InMemoryStorage
from nutriscan.infrastructure.storage.json_file_storage import JsonFileStorage


class TestCreateStorage:
    """Test backend selection."""

    def test_memory_backend(self) -> None:
        assert isinstance(create_storage(Settings(history_backend="memory")), InMemoryStorage)

    def test_file_backend(self, tmp_path) -> None:
        path = tmp_path / "storage.json"

        storage = create_storage(Settings(history_backend="file", history_path=path))

        assert isinstance(storage, JsonFileStorage)
        assert storage.path == path

    def test_unknown_backend(self) -> None:
        with pytest.raises(ConfigurationError):
            create_storage(Settings(history_backend="redis"))
