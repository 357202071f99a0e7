import asyncio
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import httpx

from assetworker.cache.exceptions import AssetFetchError, RemoteAssetNotFoundError
from assetworker.cache.models import AssetEntry, AssetRef, CachedObject
from assetworker.logging.logger import Log

# (document_id, asset_id, start, limit)
FetchKey = tuple[str, str, int, int | None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _range_end(start: int, limit: int | None) -> int | None:
    return None if limit is None else start + limit - 1


def _covers(outer: FetchKey, inner: FetchKey) -> bool:
    outer_end = _range_end(outer[2], outer[3])
    inner_end = _range_end(inner[2], inner[3])
    if outer[2] > inner[2]:
        return False
    if outer_end is None:
        return True
    return inner_end is not None and inner_end <= outer_end


def _overlaps(a: FetchKey, b: FetchKey) -> bool:
    a_end = _range_end(a[2], a[3])
    b_end = _range_end(b[2], b[3])
    return (a_end is None or b[2] <= a_end) and (b_end is None or a[2] <= b_end)


class AssetCache:
    """Client-side memo of presigned asset URLs.

    Runs on a single event loop. Concurrent requests for the same asset range
    share one in-flight fetch, and every fetch merges into the cached entry by
    ordinal even when the caller that started it has gone away.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        presign_ttl_seconds: int = 300,
        max_page_size: int = 100,
        placeholder_url: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self._ttl = timedelta(seconds=presign_ttl_seconds)
        self._max_page_size = max_page_size
        self._placeholder_url = placeholder_url
        self._clock = clock or _utcnow
        self._entries: dict[str, AssetEntry] = {}
        self._inflight: dict[FetchKey, asyncio.Task[AssetEntry]] = {}
        self._background: set[asyncio.Task[Any]] = set()

    async def ensure_asset(
        self,
        document_id: UUID | str,
        asset: AssetRef,
        *,
        force: bool = False,
        start: int = 1,
        limit: int | None = None,
    ) -> AssetEntry:
        """Return the cached entry for asset, fetching URLs if any are missing or expired.

        Raises:
            ValueError: if start or limit is below 1.
            RemoteAssetNotFoundError: if the endpoint reports the asset or range missing.
            AssetFetchError: on any other transport or HTTP failure.
        """
        if start < 1 or (limit is not None and limit < 1):
            raise ValueError(f"Invalid asset range start={start} limit={limit}")
        key: FetchKey = (str(document_id), asset.id, start, limit)

        while True:
            if not force:
                cached = self._entries.get(asset.id)
                if cached is not None and cached.is_fresh(
                    start, limit, self._clock(), self._max_page_size
                ):
                    return cached

            task = None if force else self._joinable(key)
            if task is not None:
                return await asyncio.shield(task)

            overlapping = None if force else self._overlapping(key)
            if overlapping is None:
                break
            # Wait for the overlapping fetch, then re-check freshness.
            try:
                await asyncio.shield(overlapping)
            except AssetFetchError:
                break

        task = asyncio.get_running_loop().create_task(self._fetch(key, asset))
        self._inflight[key] = task
        task.add_done_callback(lambda done: self._forget(key, done))
        return await asyncio.shield(task)

    def get_cached(self, asset_id: str) -> AssetEntry | None:
        return self._entries.get(asset_id)

    def hydrate_asset(self, asset: AssetRef) -> AssetRef:
        """Fill a listed asset's URL and expiry from the cache when it has better ones."""
        cached = self._entries.get(asset.id)
        if cached is None:
            return asset
        url = asset.url or cached.url
        expires_at = asset.expires_at
        if cached.expires_at is not None and (
            expires_at is None or cached.expires_at > expires_at
        ):
            expires_at = cached.expires_at
        cardinality = asset.cardinality if asset.cardinality is not None else cached.cardinality
        return replace(
            asset,
            url=url,
            expires_at=expires_at,
            cardinality=cardinality,
            mime_type=asset.mime_type or cached.mime_type,
        )

    def primary_url(self, document_id: UUID | str, asset: AssetRef | None) -> str | None:
        """URL of the asset's first object, or the placeholder while a refresh runs.

        Must be called from the event loop thread; the refresh is scheduled on
        the running loop.
        """
        if asset is None:
            return self._placeholder_url
        hydrated = self.hydrate_asset(asset)
        now = self._clock()
        if hydrated.url and (hydrated.expires_at is None or hydrated.expires_at > now):
            return hydrated.url

        force = hydrated.url is not None
        refresh = asyncio.get_running_loop().create_task(
            self.ensure_asset(document_id, asset, force=force)
        )
        self._background.add(refresh)
        refresh.add_done_callback(self._refresh_done)
        return self._placeholder_url

    def reset(self) -> None:
        self._entries.clear()
        self._inflight.clear()

    def _joinable(self, key: FetchKey) -> asyncio.Task[AssetEntry] | None:
        task = self._inflight.get(key)
        if task is not None and not task.done():
            return task
        for other_key, other in self._inflight.items():
            if other.done():
                continue
            if other_key[:2] == key[:2] and _covers(other_key, key):
                return other
        return None

    def _overlapping(self, key: FetchKey) -> asyncio.Task[AssetEntry] | None:
        for other_key, other in self._inflight.items():
            if other.done():
                continue
            if other_key[:2] == key[:2] and _overlaps(other_key, key):
                return other
        return None

    def _forget(self, key: FetchKey, task: asyncio.Task[AssetEntry]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    def _refresh_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            Log.warning(f"Background asset refresh failed: {exc}")

    async def _fetch(self, key: FetchKey, asset: AssetRef) -> AssetEntry:
        _, asset_id, start, limit = key
        params: dict[str, int] = {}
        if start > 1:
            params["start"] = start
        if limit is not None:
            params["limit"] = limit
        try:
            response = await self._client.get(f"/assets/{asset_id}", params=params)
        except httpx.HTTPError as exc:
            raise AssetFetchError(f"Failed to fetch asset {asset_id}: {exc}") from exc

        if response.status_code == 404:
            raise RemoteAssetNotFoundError(f"Asset {asset_id} not found")
        if response.is_error:
            raise AssetFetchError(
                f"Failed to fetch asset {asset_id}: HTTP {response.status_code}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise AssetFetchError(f"Asset {asset_id}: invalid JSON response") from exc
        if not isinstance(data, dict):
            raise AssetFetchError(
                f"Asset {asset_id}: expected a JSON object, got {type(data).__name__}"
            )
        return self._merge(asset, data)

    def _merge(self, asset: AssetRef, data: dict[str, Any]) -> AssetEntry:
        now = self._clock()
        default_expiry = now + self._ttl
        entry = self._entries.get(asset.id) or AssetEntry.from_ref(asset)

        try:
            returned = [
                CachedObject.from_wire(raw, default_expiry) for raw in data.get("objects") or []
            ]
        except (KeyError, TypeError, ValueError) as exc:
            raise AssetFetchError(f"Asset {asset.id}: malformed object in response") from exc
        for obj in returned:
            entry.objects[obj.ordinal] = obj

        entry.asset_type = data.get("asset_type") or entry.asset_type
        entry.mime_type = data.get("mime_type") or entry.mime_type
        if data.get("metadata"):
            entry.metadata = data["metadata"]
        reported = data.get("cardinality")
        entry.cardinality = max(reported or 0, len(entry.objects)) or None
        entry.expires_at = (
            min(obj.expires_at for obj in returned) if returned else default_expiry
        )
        primary = entry.objects.get(1)
        entry.url = primary.url if primary is not None else None

        self._entries[asset.id] = entry
        return entry
