from dataclasses import dataclass, field
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class SourceDocument:
    """Bytes and identity of the version an asset is derived from."""

    document_id: UUID
    version_id: UUID
    version_number: int
    original_name: str
    content_type: str | None
    data: bytes


@dataclass(frozen=True)
class ProducedObject:
    """One unit of a derived asset, e.g. a rendered page."""

    ordinal: int
    data: bytes
    metadata: dict[str, Any] = field(default_factory=dict)
