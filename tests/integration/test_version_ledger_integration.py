from pathlib import Path
from typing import Any
from uuid import uuid4

import psycopg
import pytest

from assetworker.database.connection import get_connection
from assetworker.ledger.exceptions import DocumentNotFoundError
from assetworker.ledger.version_ledger import VersionLedger, content_checksum


def _stored_files(root: Path) -> set[Path]:
    return {path for path in root.rglob("*") if path.is_file()}


def _analyze_jobs() -> list[dict[str, Any]]:
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT payload FROM jobs WHERE job_type = 'analyze-document' ORDER BY created_at"
            )
            return [row[0] for row in cur.fetchall()]


@pytest.mark.integration
class TestVersionLedgerIntegration:
    def test_new_document_gets_version_one_and_analyze_job(
        self, ledger: VersionLedger, sample_pdf_bytes: bytes
    ) -> None:
        result = ledger.submit_version(None, sample_pdf_bytes, "report.pdf", "application/pdf")

        assert result.reused is False
        assert result.version.version_number == 1
        assert result.version.checksum == content_checksum(sample_pdf_bytes)
        assert result.document.current_version_id == result.version.id

        document = ledger.get_document(result.document.id)
        assert document.current_version_id == result.version.id
        assert document.original_name == "report.pdf"

        payloads = _analyze_jobs()
        assert payloads == [
            {
                "document_id": str(result.document.id),
                "version_id": str(result.version.id),
                "force": False,
            }
        ]

    def test_identical_upload_is_deduplicated(
        self, ledger: VersionLedger, sample_pdf_bytes: bytes, tmp_path: Path
    ) -> None:
        first = ledger.submit_version(None, sample_pdf_bytes, "a.pdf", "application/pdf")
        files_before = _stored_files(tmp_path / "files")

        second = ledger.submit_version(None, sample_pdf_bytes, "b.pdf", "application/pdf")

        assert second.reused is True
        assert second.document.id == first.document.id
        assert second.version.id == first.version.id
        assert _stored_files(tmp_path / "files") == files_before
        assert len(_analyze_jobs()) == 1

    def test_new_content_becomes_next_version(
        self, ledger: VersionLedger, sample_pdf_bytes: bytes, multi_page_pdf_bytes: bytes
    ) -> None:
        first = ledger.submit_version(None, sample_pdf_bytes, "a.pdf", "application/pdf")

        second = ledger.submit_version(
            first.document.id, multi_page_pdf_bytes, "a-v2.pdf", "application/pdf"
        )

        assert second.reused is False
        assert second.version.version_number == 2
        document = ledger.get_document(first.document.id)
        assert document.current_version_id == second.version.id
        assert document.filename == "a-v2.pdf"
        assert document.original_name == "a.pdf"
        versions = ledger.list_versions(first.document.id)
        assert [v.version_number for v in versions] == [1, 2]
        assert len(_analyze_jobs()) == 2

    def test_resubmitting_current_content_to_document_is_reused(
        self, ledger: VersionLedger, sample_pdf_bytes: bytes
    ) -> None:
        first = ledger.submit_version(None, sample_pdf_bytes, "a.pdf", "application/pdf")

        again = ledger.submit_version(first.document.id, sample_pdf_bytes, "a.pdf")

        assert again.reused is True
        assert again.version.id == first.version.id
        assert len(ledger.list_versions(first.document.id)) == 1

    def test_reupload_after_soft_delete_restores_document(
        self, ledger: VersionLedger, db_conn: psycopg.Connection[Any], sample_pdf_bytes: bytes
    ) -> None:
        first = ledger.submit_version(None, sample_pdf_bytes, "a.pdf", "application/pdf")
        ledger.soft_delete(first.document.id)
        with pytest.raises(DocumentNotFoundError):
            ledger.get_document(first.document.id)

        again = ledger.submit_version(None, sample_pdf_bytes, "a.pdf", "application/pdf")

        assert again.reused is True
        assert again.document.id == first.document.id
        assert ledger.get_document(first.document.id).deleted_at is None

    def test_submit_to_deleted_document_is_rejected(
        self, ledger: VersionLedger, sample_pdf_bytes: bytes, multi_page_pdf_bytes: bytes
    ) -> None:
        first = ledger.submit_version(None, sample_pdf_bytes, "a.pdf", "application/pdf")
        ledger.soft_delete(first.document.id)

        with pytest.raises(DocumentNotFoundError):
            ledger.submit_version(first.document.id, multi_page_pdf_bytes, "a.pdf")

    def test_soft_delete_of_unknown_document_raises(self, ledger: VersionLedger) -> None:
        with pytest.raises(DocumentNotFoundError):
            ledger.soft_delete(uuid4())
