from pathlib import Path

from assetworker.config.settings import Settings
from assetworker.storage.azure_store import AzureBlobContentStore
from assetworker.storage.base import BaseContentStore
from assetworker.storage.local_store import LocalContentStore


class ContentStoreFactory:
    """Creates the content store configured by storage_backend."""

    BACKENDS = ("local", "azure_blob")

    @classmethod
    def create(cls, settings: Settings) -> BaseContentStore:
        backend = settings.storage_backend.lower()
        if backend == "local":
            return LocalContentStore(
                root=Path(settings.storage_local_root),
                public_base_url=settings.storage_public_base_url,
                signing_secret=settings.storage_signing_secret,
            )
        if backend == "azure_blob":
            return AzureBlobContentStore(
                connection_string=settings.azure_storage_connection_string,
                container=settings.azure_storage_container,
            )
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
