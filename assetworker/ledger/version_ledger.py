"""Content-addressed document versions with upload deduplication."""

import hashlib
from dataclasses import dataclass
from typing import Any
from uuid import UUID, uuid4

from assetworker.database.connection import get_connection
from assetworker.database.models import DocumentRecord, VersionRecord
from assetworker.database.repositories.document_repository import DocumentRepository
from assetworker.database.repositories.job_repository import JobRepository
from assetworker.ledger.exceptions import DocumentNotFoundError
from assetworker.logging.logger import Log
from assetworker.queue.payloads import AnalyzeDocumentPayload, encode_payload
from assetworker.storage.base import BaseContentStore, version_content_key


@dataclass(frozen=True)
class SubmitResult:
    document: DocumentRecord
    version: VersionRecord
    reused: bool


def content_checksum(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


class VersionLedger:
    """Creates immutable document versions and swaps the current-version pointer."""

    def __init__(
        self,
        doc_repo: DocumentRepository,
        job_repo: JobRepository,
        content_store: BaseContentStore,
    ) -> None:
        self._doc_repo = doc_repo
        self._job_repo = job_repo
        self._content_store = content_store

    def submit_version(
        self,
        document_id: UUID | None,
        content: bytes,
        filename: str,
        content_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> SubmitResult:
        """Record uploaded content as a new version, or reuse an identical one.

        Without document_id a new document is created unless some document's
        current version already has the same checksum. With document_id the
        content becomes that document's next version unless it matches the
        current one.

        Raises:
            DocumentNotFoundError: if document_id is given but does not exist
                or has been deleted.
        """
        checksum = content_checksum(content)
        if document_id is not None:
            self.get_document(document_id)

        existing = self._find_duplicate(document_id, checksum)
        if existing is not None:
            return existing

        version_id = uuid4()
        target_document_id = document_id or uuid4()
        content_key = version_content_key(target_document_id, version_id)

        # The blob must exist before any row references it.
        self._content_store.put(content_key, content, content_type)

        with get_connection() as conn:
            if document_id is None:
                document = DocumentRecord(
                    id=target_document_id,
                    filename=filename,
                    original_name=filename,
                    content_type=content_type,
                    current_version_id=version_id,
                    metadata=metadata or {},
                )
                self._doc_repo.insert_document(conn, document)
                version_number = 1
            else:
                locked = self._doc_repo.lock_document(conn, document_id)
                if locked is None or locked.deleted_at is not None:
                    conn.rollback()
                    self._content_store.delete(content_key)
                    raise DocumentNotFoundError(f"Document {document_id} not found")
                match = self._doc_repo.find_current_by_checksum(conn, checksum, document_id)
                if match is not None:
                    # A concurrent upload of the same content won the lock.
                    conn.rollback()
                    self._content_store.delete(content_key)
                    Log.info(
                        f"Upload deduplicated against document {document_id} after lock "
                        f"(checksum {checksum[:12]})"
                    )
                    return SubmitResult(document=match[0], version=match[1], reused=True)
                version_number = self._doc_repo.next_version_number(conn, document_id)
                self._doc_repo.set_current_version(
                    conn, document_id, version_id, filename, content_type
                )
                document = locked
                document.current_version_id = version_id
                document.filename = filename
                if content_type is not None:
                    document.content_type = content_type

            version = VersionRecord(
                id=version_id,
                document_id=target_document_id,
                version_number=version_number,
                content_key=content_key,
                size_bytes=len(content),
                checksum=checksum,
            )
            self._doc_repo.insert_version(conn, version)
            self._job_repo.enqueue(
                AnalyzeDocumentPayload.job_type,
                encode_payload(
                    AnalyzeDocumentPayload(
                        document_id=target_document_id, version_id=version_id
                    )
                ),
                conn=conn,
            )
            conn.commit()

        Log.info(
            f"Stored version {version_number} of document {target_document_id} "
            f"({len(content)} bytes, checksum {checksum[:12]})"
        )
        return SubmitResult(document=document, version=version, reused=False)

    def _find_duplicate(self, document_id: UUID | None, checksum: str) -> SubmitResult | None:
        with get_connection() as conn:
            match = self._doc_repo.find_current_by_checksum(conn, checksum, document_id)
            if match is None:
                return None
            document, version = match
            if document.deleted_at is not None:
                if document_id is not None:
                    raise DocumentNotFoundError(f"Document {document_id} not found")
                self._doc_repo.undelete(conn, document.id)
                document.deleted_at = None
            conn.commit()

        Log.info(f"Upload deduplicated against document {document.id} (checksum {checksum[:12]})")
        return SubmitResult(document=document, version=version, reused=True)

    def get_document(self, document_id: UUID) -> DocumentRecord:
        document = self._doc_repo.find_document(document_id)
        if document is None or document.deleted_at is not None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document

    def list_versions(self, document_id: UUID) -> list[VersionRecord]:
        self.get_document(document_id)
        return self._doc_repo.list_versions(document_id)

    def soft_delete(self, document_id: UUID) -> None:
        if not self._doc_repo.soft_delete(document_id):
            raise DocumentNotFoundError(f"Document {document_id} not found")
        Log.info(f"Document {document_id} soft-deleted")
