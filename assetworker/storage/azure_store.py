from datetime import datetime, timedelta, timezone

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import (
    BlobSasPermissions,
    BlobServiceClient,
    ContentSettings,
    generate_blob_sas,
)

from assetworker.storage.base import BaseContentStore, PresignedUrl
from assetworker.storage.exceptions import ContentNotFoundError, StorageError


class AzureBlobContentStore(BaseContentStore):
    """Content store on Azure Blob Storage; read URLs are blob SAS tokens."""

    def __init__(self, connection_string: str, container: str) -> None:
        if not connection_string:
            raise ValueError("azure_storage_connection_string is required for azure_blob")
        self._service = BlobServiceClient.from_connection_string(connection_string)
        self._container_name = container
        self._container = self._service.get_container_client(container)

    def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
        blob = self._container.get_blob_client(key)
        settings = ContentSettings(content_type=content_type) if content_type else None
        try:
            blob.upload_blob(data, overwrite=True, content_settings=settings)
        except AzureError as exc:
            raise StorageError(f"Failed to upload '{key}': {exc}") from exc
        return key

    def get(self, key: str) -> bytes:
        blob = self._container.get_blob_client(key)
        try:
            return blob.download_blob().readall()
        except ResourceNotFoundError as exc:
            raise ContentNotFoundError(f"Content not found: {key}") from exc
        except AzureError as exc:
            raise StorageError(f"Failed to download '{key}': {exc}") from exc

    def presign(self, key: str, ttl_seconds: int) -> PresignedUrl:
        expires_at = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(
            seconds=ttl_seconds
        )
        account_key = getattr(self._service.credential, "account_key", None)
        if not account_key:
            raise StorageError("Azure credential has no account key; cannot sign URLs")
        sas = generate_blob_sas(
            account_name=self._service.account_name,
            container_name=self._container_name,
            blob_name=key,
            account_key=account_key,
            permission=BlobSasPermissions(read=True),
            expiry=expires_at,
        )
        blob_url = self._container.get_blob_client(key).url
        return PresignedUrl(url=f"{blob_url}?{sas}", expires_at=expires_at)

    def delete(self, key: str) -> None:
        try:
            self._container.get_blob_client(key).delete_blob()
        except ResourceNotFoundError:
            return
        except AzureError as exc:
            raise StorageError(f"Failed to delete '{key}': {exc}") from exc
