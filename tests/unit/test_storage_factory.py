from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from assetworker.storage.factory import ContentStoreFactory
from assetworker.storage.local_store import LocalContentStore


def _make_settings(backend: str, root: Path) -> MagicMock:
    return MagicMock(
        storage_backend=backend,
        storage_local_root=str(root),
        storage_public_base_url="http://files.test",
        storage_signing_secret="secret",
        azure_storage_connection_string="UseDevelopmentStorage=true",
        azure_storage_container="documents",
    )


class TestContentStoreFactory:
    def test_creates_local_store(self, tmp_path: Path) -> None:
        store = ContentStoreFactory.create(_make_settings("local", tmp_path))
        assert isinstance(store, LocalContentStore)

    def test_is_case_insensitive(self, tmp_path: Path) -> None:
        store = ContentStoreFactory.create(_make_settings("LOCAL", tmp_path))
        assert isinstance(store, LocalContentStore)

    @patch("assetworker.storage.factory.AzureBlobContentStore")
    def test_creates_azure_store(self, mock_azure: MagicMock, tmp_path: Path) -> None:
        store = ContentStoreFactory.create(_make_settings("azure_blob", tmp_path))
        mock_azure.assert_called_once_with(
            connection_string="UseDevelopmentStorage=true", container="documents"
        )
        assert store is mock_azure.return_value

    def test_raises_for_unknown_backend(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Unknown storage backend"):
            ContentStoreFactory.create(_make_settings("s3", tmp_path))
