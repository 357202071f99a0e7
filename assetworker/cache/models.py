from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def parse_expiry(value: Any) -> datetime | None:
    """Parse an ISO 8601 string or epoch seconds into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class CachedObject:
    ordinal: int
    url: str
    expires_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_wire(cls, data: dict[str, Any], default_expiry: datetime) -> "CachedObject":
        return cls(
            ordinal=int(data["ordinal"]),
            url=data["url"],
            expires_at=parse_expiry(data.get("expires_at")) or default_expiry,
            metadata=data.get("metadata") or {},
        )


@dataclass(frozen=True)
class AssetRef:
    """An asset as listed on a document version, possibly with a URL attached."""

    id: str
    asset_type: str
    mime_type: str | None = None
    cardinality: int | None = None
    url: str | None = None
    expires_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_wire(cls, data: dict[str, Any], asset_type: str | None = None) -> "AssetRef":
        return cls(
            id=str(data["id"]),
            asset_type=data.get("asset_type") or asset_type or "",
            mime_type=data.get("mime_type"),
            cardinality=data.get("cardinality"),
            url=data.get("url"),
            expires_at=parse_expiry(data.get("expires_at")),
            metadata=data.get("metadata") or {},
        )


@dataclass
class AssetEntry:
    """Cached view of one asset: merged objects keyed by ordinal."""

    id: str
    asset_type: str
    mime_type: str | None = None
    cardinality: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    objects: dict[int, CachedObject] = field(default_factory=dict)
    url: str | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_ref(cls, ref: AssetRef) -> "AssetEntry":
        return cls(
            id=ref.id,
            asset_type=ref.asset_type,
            mime_type=ref.mime_type,
            cardinality=ref.cardinality,
            metadata=dict(ref.metadata),
        )

    def ordered_objects(self) -> list[CachedObject]:
        return [self.objects[ordinal] for ordinal in sorted(self.objects)]

    def is_fresh(
        self,
        start: int,
        limit: int | None,
        now: datetime,
        page_size: int | None = None,
    ) -> bool:
        """Every existing ordinal in the requested range has an unexpired URL.

        The range stops at the cardinality when it is known. Without a limit it
        runs to the cardinality, capped at page_size (the most objects the
        endpoint returns per request); if the cardinality is unknown the entry
        cannot prove it is complete and counts as stale.
        """
        if limit is not None:
            end = start + limit - 1
            if self.cardinality is not None:
                end = min(end, self.cardinality)
        elif self.cardinality is not None:
            end = self.cardinality
            if page_size is not None:
                end = min(end, start + page_size - 1)
        else:
            return False
        if end < start:
            return False
        for ordinal in range(start, end + 1):
            obj = self.objects.get(ordinal)
            if obj is None or obj.expires_at <= now:
                return False
        return True


class AssetGroup:
    """Type-keyed, ordered view over a version's assets.

    The read API has shipped two shapes for the same data: a list of entries
    carrying their asset_type, and an object keyed by asset type.
    """

    def __init__(self, assets: list[AssetRef] | None = None) -> None:
        self._assets: dict[str, AssetRef] = {}
        for asset in assets or []:
            self._assets.setdefault(asset.asset_type, asset)

    @classmethod
    def from_wire(cls, data: list[Any] | dict[str, Any] | None) -> "AssetGroup":
        if not data:
            return cls()
        if isinstance(data, list):
            return cls([AssetRef.from_wire(item) for item in data if isinstance(item, dict)])
        if isinstance(data, dict):
            return cls(
                [
                    AssetRef.from_wire(item, asset_type=asset_type)
                    for asset_type, item in data.items()
                    if isinstance(item, dict)
                ]
            )
        raise TypeError(f"Unsupported asset group shape: {type(data).__name__}")

    def get(self, asset_type: str) -> AssetRef | None:
        return self._assets.get(asset_type)

    def types(self) -> list[str]:
        return list(self._assets)

    def __iter__(self) -> Iterator[AssetRef]:
        return iter(self._assets.values())

    def __len__(self) -> int:
        return len(self._assets)

    def __contains__(self, asset_type: object) -> bool:
        return asset_type in self._assets
