import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import psycopg
import pytest

from assetworker.config.settings import Settings
from assetworker.database.connection import apply_schema, close_pool, get_connection, init_pool
from assetworker.database.repositories.asset_repository import AssetRepository
from assetworker.database.repositories.document_repository import DocumentRepository
from assetworker.database.repositories.job_repository import JobRepository
from assetworker.ledger.version_ledger import VersionLedger
from assetworker.storage.local_store import LocalContentStore

_TABLES = "jobs, document_asset_objects, document_assets, document_versions, documents"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docvault_test")
    return Settings(max_job_attempts=5, ocr_enabled=False, pdf_engine="pdfplumber")


def _truncate() -> None:
    with get_connection() as conn:
        conn.execute(f"TRUNCATE {_TABLES} CASCADE")  # type: ignore[arg-type]
        conn.commit()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        apply_schema()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to point at one.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[None, None, None]:
    _truncate()
    yield
    _truncate()


@pytest.fixture
def db_conn(integration_cleanup: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def content_store(tmp_path: Path) -> LocalContentStore:
    return LocalContentStore(tmp_path / "files", "http://files.test", "integration-secret")


@pytest.fixture
def job_repo(test_settings: Settings) -> JobRepository:
    return JobRepository(test_settings.max_job_attempts)


@pytest.fixture
def doc_repo() -> DocumentRepository:
    return DocumentRepository()


@pytest.fixture
def asset_repo() -> AssetRepository:
    return AssetRepository()


@pytest.fixture
def ledger(
    integration_cleanup: None,
    doc_repo: DocumentRepository,
    job_repo: JobRepository,
    content_store: LocalContentStore,
) -> VersionLedger:
    return VersionLedger(doc_repo, job_repo, content_store)
