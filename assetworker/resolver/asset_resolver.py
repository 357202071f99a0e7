from uuid import UUID

from assetworker.database.repositories.asset_repository import AssetRepository
from assetworker.resolver.exceptions import AssetNotFoundError
from assetworker.resolver.models import AssetSummary, ResolvedAsset, ResolvedObject
from assetworker.storage.base import BaseContentStore


class AssetResolver:
    """Turns stored asset objects into short-lived read URLs.

    Stateless: every call presigns again, nothing is cached here.
    """

    def __init__(
        self,
        asset_repo: AssetRepository,
        content_store: BaseContentStore,
        presign_ttl_seconds: int = 300,
        max_page_size: int = 100,
    ) -> None:
        self._asset_repo = asset_repo
        self._content_store = content_store
        self._presign_ttl_seconds = presign_ttl_seconds
        self._max_page_size = max_page_size

    def resolve(
        self,
        asset_id: UUID,
        start: int | None = None,
        limit: int | None = None,
    ) -> ResolvedAsset:
        """Resolve objects with ordinals in [start, start + limit - 1].

        start defaults to 1 and limit to everything up to max_page_size.
        Ordinals without an object yet are left out of the result.

        Raises:
            AssetNotFoundError: if the asset does not exist, start or limit is
                below 1, or start lies beyond the asset's cardinality.
        """
        asset = self._asset_repo.find_by_id(asset_id)
        if asset is None:
            raise AssetNotFoundError(f"Asset {asset_id} not found")

        first = 1 if start is None else start
        if first < 1:
            raise AssetNotFoundError(f"Asset {asset_id}: start must be >= 1, got {first}")
        if limit is not None and limit < 1:
            raise AssetNotFoundError(f"Asset {asset_id}: limit must be >= 1, got {limit}")

        cardinality = asset.cardinality
        if cardinality is None:
            cardinality = self._asset_repo.max_ordinal(asset.id)
        if first > cardinality:
            raise AssetNotFoundError(
                f"Asset {asset_id}: start {first} is beyond cardinality {cardinality}"
            )

        page_size = self._max_page_size if limit is None else min(limit, self._max_page_size)
        last = first + page_size - 1

        objects = []
        for record in self._asset_repo.list_objects(asset.id, first, last):
            presigned = self._content_store.presign(record.content_key, self._presign_ttl_seconds)
            objects.append(
                ResolvedObject(
                    ordinal=record.ordinal,
                    url=presigned.url,
                    expires_at=presigned.expires_at,
                    metadata=record.metadata,
                )
            )

        return ResolvedAsset(
            id=asset.id,
            version_id=asset.version_id,
            asset_type=asset.asset_type,
            mime_type=asset.mime_type,
            cardinality=asset.cardinality,
            metadata=asset.metadata,
            complete=asset.is_complete,
            objects=objects,
        )

    def list_for_version(self, version_id: UUID) -> list[AssetSummary]:
        return [
            AssetSummary(
                id=asset.id,
                asset_type=asset.asset_type,
                mime_type=asset.mime_type,
                cardinality=asset.cardinality,
                complete=asset.is_complete,
            )
            for asset in self._asset_repo.list_for_version(version_id)
        ]
