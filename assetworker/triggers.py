"""Enqueue entry points used by upload and re-analysis flows."""

from uuid import UUID

from assetworker.database.repositories.document_repository import DocumentRepository
from assetworker.database.repositories.job_repository import JobRepository
from assetworker.ledger.exceptions import DocumentNotFoundError
from assetworker.logging.logger import Log
from assetworker.queue.payloads import (
    AnalyzeDocumentPayload,
    GenerateAssetsPayload,
    encode_payload,
)


class AssetTriggers:
    def __init__(self, doc_repo: DocumentRepository, job_repo: JobRepository) -> None:
        self._doc_repo = doc_repo
        self._job_repo = job_repo

    def request_assets(self, document_id: UUID, force: bool = False) -> UUID:
        """Queue analysis of a document's current version.

        Raises:
            DocumentNotFoundError: if the document does not exist or is deleted.
            StoreUnavailableError: if the job store cannot be reached.
        """
        document = self._doc_repo.find_document(document_id)
        if document is None or document.deleted_at is not None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self._enqueue_analyze(document.id, document.current_version_id, force)

    def reanalyze_all(self, force: bool = True) -> int:
        """Queue analysis for the current version of every non-deleted document."""
        count = 0
        for document_id, version_id in self._doc_repo.list_active_current_versions():
            self._enqueue_analyze(document_id, version_id, force)
            count += 1
        Log.info(f"Queued re-analysis of {count} document(s)")
        return count

    def enqueue_generate_assets(
        self,
        version_id: UUID,
        asset_types: list[str],
        force: bool = False,
    ) -> UUID:
        payload = GenerateAssetsPayload(version_id=version_id, asset_types=asset_types, force=force)
        job_id = self._job_repo.enqueue(payload.job_type, encode_payload(payload))
        Log.info(f"Queued generate-assets job {job_id} for version {version_id}")
        return job_id

    def _enqueue_analyze(self, document_id: UUID, version_id: UUID, force: bool) -> UUID:
        payload = AnalyzeDocumentPayload(
            document_id=document_id, version_id=version_id, force=force
        )
        return self._job_repo.enqueue(payload.job_type, encode_payload(payload))
