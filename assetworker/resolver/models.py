from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class ResolvedObject:
    ordinal: int
    url: str
    expires_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ordinal": self.ordinal,
            "url": self.url,
            "expires_at": self.expires_at.isoformat(),
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class ResolvedAsset:
    """An asset with presigned URLs for one page of its objects."""

    id: UUID
    version_id: UUID
    asset_type: str
    mime_type: str
    cardinality: int | None
    metadata: dict[str, Any]
    complete: bool
    objects: list[ResolvedObject] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "asset_type": self.asset_type,
            "mime_type": self.mime_type,
            "cardinality": self.cardinality,
            "metadata": self.metadata,
            "objects": [obj.to_dict() for obj in self.objects],
        }


@dataclass(frozen=True)
class AssetSummary:
    id: UUID
    asset_type: str
    mime_type: str
    cardinality: int | None
    complete: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "asset_type": self.asset_type,
            "mime_type": self.mime_type,
            "cardinality": self.cardinality,
            "complete": self.complete,
        }
