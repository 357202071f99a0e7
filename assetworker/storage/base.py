from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class PresignedUrl:
    url: str
    expires_at: datetime


def version_content_key(document_id: UUID, version_id: UUID) -> str:
    return f"documents/{document_id}/versions/{version_id}"


def asset_object_key(
    document_id: UUID,
    version_id: UUID,
    asset_type: str,
    ordinal: int,
) -> str:
    """Deterministic key so a retried or forced run overwrites the same blob."""
    return f"{version_content_key(document_id, version_id)}/assets/{asset_type}/{ordinal}"


class BaseContentStore(ABC):
    """Contract for key-addressed blob stores."""

    @abstractmethod
    def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
        """Store bytes under key, replacing any existing content.

        Returns:
            The key the content was stored under.

        Raises:
            StorageError: if the write is not confirmed.
        """

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Read the bytes stored under key.

        Raises:
            ContentNotFoundError: if nothing is stored under key.
            StorageError: on any other failure.
        """

    @abstractmethod
    def presign(self, key: str, ttl_seconds: int) -> PresignedUrl:
        """Issue a time-limited read URL for key."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the content under key. Missing keys are ignored."""
