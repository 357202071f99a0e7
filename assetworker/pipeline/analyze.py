from typing import Any

from assetworker.database.models import JobRecord
from assetworker.database.repositories.document_repository import DocumentRepository
from assetworker.database.repositories.job_repository import JobRepository
from assetworker.ledger.exceptions import DocumentNotFoundError, VersionNotFoundError
from assetworker.logging.logger import Log
from assetworker.pipeline.handlers import JobHandler
from assetworker.producers.base import BaseAssetProducer
from assetworker.queue.exceptions import PayloadError
from assetworker.queue.payloads import (
    JOB_ANALYZE_DOCUMENT,
    AnalyzeDocumentPayload,
    GenerateAssetsPayload,
    encode_payload,
)


class AnalyzeDocumentHandler(JobHandler):
    """Decides which asset types a version supports and schedules them."""

    job_type = JOB_ANALYZE_DOCUMENT

    def __init__(
        self,
        doc_repo: DocumentRepository,
        job_repo: JobRepository,
        producers: dict[str, BaseAssetProducer],
    ) -> None:
        self._doc_repo = doc_repo
        self._job_repo = job_repo
        self._producers = producers

    def handle(self, job: JobRecord, payload: AnalyzeDocumentPayload) -> None:
        version = self._doc_repo.find_version(payload.version_id)
        if version is None:
            raise VersionNotFoundError(f"Version {payload.version_id} not found")
        if version.document_id != payload.document_id:
            raise PayloadError(
                f"Version {version.id} belongs to document {version.document_id}, "
                f"not {payload.document_id}"
            )
        document = self._doc_repo.find_document(version.document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {version.document_id} not found")

        summary: dict[str, Any] = {}
        supported: list[str] = []
        for asset_type, producer in self._producers.items():
            ok = producer.supports(document.content_type, document.original_name)
            summary[f"{asset_type}_supported"] = ok
            if ok:
                supported.append(asset_type)
            else:
                summary[f"{asset_type}_reason"] = (
                    f"{document.content_type or 'unknown type'} is not supported for {asset_type}"
                )

        self._doc_repo.update_operations_summary(version.id, summary)

        if not supported:
            Log.info(f"Version {version.id}: no supported asset types, nothing to generate")
            return

        job_id = self._job_repo.enqueue(
            GenerateAssetsPayload.job_type,
            encode_payload(
                GenerateAssetsPayload(
                    version_id=version.id, asset_types=supported, force=payload.force
                )
            ),
        )
        Log.info(
            f"Version {version.id}: queued generate-assets job {job_id} "
            f"for {', '.join(supported)}"
        )
