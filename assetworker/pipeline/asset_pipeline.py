from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from assetworker.database.models import JobRecord, VersionRecord
from assetworker.database.repositories.asset_repository import AssetRepository
from assetworker.database.repositories.document_repository import DocumentRepository
from assetworker.ledger.exceptions import DocumentNotFoundError, VersionNotFoundError
from assetworker.logging.logger import Log
from assetworker.pipeline.handlers import JobHandler
from assetworker.producers.base import BaseAssetProducer
from assetworker.producers.exceptions import UnsupportedDocumentError
from assetworker.producers.models import SourceDocument
from assetworker.queue.exceptions import PayloadError
from assetworker.queue.payloads import JOB_GENERATE_ASSETS, GenerateAssetsPayload
from assetworker.storage.base import BaseContentStore, asset_object_key

# Object metadata keys copied into the asset's aggregate metadata.
_AGGREGATED_KEYS = ("page_count", "source", "characters")


@dataclass
class PipelineOutcome:
    generated: dict[str, int] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)


class AssetPipeline(JobHandler):
    """Runs producers for a version and persists their objects.

    Objects are written blob-first, row-second and committed one ordinal at a
    time, so readers may observe a partially populated asset. A retry
    overwrites the same keys and rows.
    """

    job_type = JOB_GENERATE_ASSETS

    def __init__(
        self,
        doc_repo: DocumentRepository,
        asset_repo: AssetRepository,
        content_store: BaseContentStore,
        producers: dict[str, BaseAssetProducer],
    ) -> None:
        self._doc_repo = doc_repo
        self._asset_repo = asset_repo
        self._content_store = content_store
        self._producers = producers

    def handle(self, job: JobRecord, payload: GenerateAssetsPayload) -> PipelineOutcome:
        unknown = [t for t in payload.asset_types if t not in self._producers]
        if unknown:
            raise PayloadError(f"No producer registered for asset types: {', '.join(unknown)}")

        version = self._doc_repo.find_version(payload.version_id)
        if version is None:
            raise VersionNotFoundError(f"Version {payload.version_id} not found")

        outcome = PipelineOutcome()
        pending: list[str] = []
        for asset_type in payload.asset_types:
            existing = self._asset_repo.find_asset(version.id, asset_type)
            if existing is not None and existing.is_complete and not payload.force:
                outcome.skipped.append(asset_type)
            else:
                pending.append(asset_type)

        if outcome.skipped:
            Log.info(f"Version {version.id}: {', '.join(outcome.skipped)} already complete, skipping")
        if not pending:
            return outcome

        source = self._load_source(version)
        for asset_type in pending:
            outcome.generated[asset_type] = self._generate(
                version, source, self._producers[asset_type]
            )
        return outcome

    def _load_source(self, version: VersionRecord) -> SourceDocument:
        document = self._doc_repo.find_document(version.document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {version.document_id} not found")
        data = self._content_store.get(version.content_key)
        Log.info(f"Loaded {len(data)} bytes for version {version.id}")
        return SourceDocument(
            document_id=document.id,
            version_id=version.id,
            version_number=version.version_number,
            original_name=document.original_name,
            content_type=document.content_type,
            data=data,
        )

    def _generate(
        self,
        version: VersionRecord,
        source: SourceDocument,
        producer: BaseAssetProducer,
    ) -> int:
        asset_type = producer.asset_type
        if not producer.supports(source.content_type, source.original_name):
            raise UnsupportedDocumentError(
                f"{asset_type} cannot be produced from {source.content_type or source.original_name}"
            )

        started_at = _now_iso()
        asset = self._asset_repo.upsert_asset(
            version.id,
            asset_type,
            producer.mime_type,
            producer.estimate_cardinality(source),
            {"started_at": started_at},
        )

        count = 0
        max_ordinal = 0
        aggregate: dict[str, Any] = {}
        for obj in producer.produce(source):
            key = asset_object_key(source.document_id, version.id, asset_type, obj.ordinal)
            self._content_store.put(key, obj.data, producer.mime_type)
            self._asset_repo.upsert_object(asset.id, obj.ordinal, key, obj.metadata)
            count += 1
            max_ordinal = max(max_ordinal, obj.ordinal)
            for name in _AGGREGATED_KEYS:
                if name in obj.metadata and name not in aggregate:
                    aggregate[name] = obj.metadata[name]

        for stale_key in self._asset_repo.delete_objects_beyond(asset.id, max_ordinal):
            self._content_store.delete(stale_key)

        aggregate.update(
            {
                "started_at": started_at,
                "generated_at": _now_iso(),
                "object_count": count,
            }
        )
        self._asset_repo.mark_complete(asset.id, max_ordinal or None, aggregate)
        Log.info(f"Version {version.id}: {asset_type} complete with {count} object(s)")
        return count


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
