from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

JOB_STATUS_QUEUED = "queued"
JOB_STATUS_PROCESSING = "processing"
JOB_STATUS_SUCCEEDED = "succeeded"
JOB_STATUS_FAILED = "failed"


@dataclass
class JobRecord:
    """Represents a row from the jobs table."""

    id: UUID
    job_type: str
    payload: dict[str, Any]
    status: str
    attempts: int
    run_after: datetime | None = None
    last_error: str | None = None
    locked_by: str | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class DocumentRecord:
    """Represents a row from the documents table."""

    id: UUID
    filename: str
    original_name: str
    content_type: str | None
    current_version_id: UUID
    metadata: dict[str, Any] = field(default_factory=dict)
    uploaded_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None


@dataclass
class VersionRecord:
    """Represents a row from the document_versions table."""

    id: UUID
    document_id: UUID
    version_number: int
    content_key: str
    size_bytes: int
    checksum: str
    operations_summary: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass
class AssetRecord:
    """Represents a row from the document_assets table."""

    id: UUID
    version_id: UUID
    asset_type: str
    mime_type: str
    cardinality: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None


@dataclass
class AssetObjectRecord:
    """Represents a row from the document_asset_objects table."""

    id: UUID
    asset_id: UUID
    ordinal: int
    content_key: str
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
