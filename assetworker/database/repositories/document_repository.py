from typing import Any
from uuid import UUID

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from assetworker.database.connection import get_connection
from assetworker.database.models import DocumentRecord, VersionRecord

_DOCUMENT_COLUMNS = """
    d.id, d.filename, d.original_name, d.content_type, d.current_version_id,
    d.metadata, d.uploaded_at, d.updated_at, d.deleted_at
"""

_VERSION_COLUMNS = """
    v.id AS version_id, v.document_id, v.version_number, v.content_key,
    v.size_bytes, v.checksum, v.operations_summary,
    v.metadata AS version_metadata, v.created_at AS version_created_at
"""


def _row_to_document(row: dict[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        id=row["id"],
        filename=row["filename"],
        original_name=row["original_name"],
        content_type=row["content_type"],
        current_version_id=row["current_version_id"],
        metadata=row["metadata"] or {},
        uploaded_at=row["uploaded_at"],
        updated_at=row["updated_at"],
        deleted_at=row["deleted_at"],
    )


def _row_to_version(row: dict[str, Any]) -> VersionRecord:
    return VersionRecord(
        id=row["version_id"],
        document_id=row["document_id"],
        version_number=row["version_number"],
        content_key=row["content_key"],
        size_bytes=row["size_bytes"],
        checksum=row["checksum"],
        operations_summary=row["operations_summary"] or {},
        metadata=row["version_metadata"] or {},
        created_at=row["version_created_at"],
    )


class DocumentRepository:
    """Database operations for the documents and document_versions tables.

    Methods that take a connection participate in the caller's transaction and
    never commit; the others manage their own connection.
    """

    def lock_document(
        self, conn: psycopg.Connection[Any], document_id: UUID
    ) -> DocumentRecord | None:
        """Load a document row with FOR UPDATE, serializing version numbering."""
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents d WHERE d.id = %s FOR UPDATE",
                (document_id,),
            )
            row = cur.fetchone()
        return _row_to_document(row) if row is not None else None

    def find_current_by_checksum(
        self,
        conn: psycopg.Connection[Any],
        checksum: str,
        document_id: UUID | None = None,
    ) -> tuple[DocumentRecord, VersionRecord] | None:
        """Find a document whose current version has this checksum.

        With document_id only that document is considered.
        """
        sql = f"""
            SELECT {_DOCUMENT_COLUMNS}, {_VERSION_COLUMNS}
            FROM documents d
            JOIN document_versions v ON v.id = d.current_version_id
            WHERE v.checksum = %s
        """
        params: tuple[Any, ...] = (checksum,)
        if document_id is not None:
            sql += " AND d.id = %s"
            params = (checksum, document_id)
        sql += " ORDER BY d.deleted_at NULLS FIRST, d.uploaded_at LIMIT 1"
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(sql, params)
            row = cur.fetchone()
        if row is None:
            return None
        return _row_to_document(row), _row_to_version(row)

    def next_version_number(self, conn: psycopg.Connection[Any], document_id: UUID) -> int:
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT COALESCE(MAX(version_number), 0) + 1
                FROM document_versions
                WHERE document_id = %s
                """,
                (document_id,),
            )
            row = cur.fetchone()
        return int(row[0]) if row is not None else 1

    def insert_document(
        self, conn: psycopg.Connection[Any], document: DocumentRecord
    ) -> None:
        conn.execute(
            """
            INSERT INTO documents
            (id, filename, original_name, content_type, current_version_id, metadata)
            VALUES (%s, %s, %s, %s, %s, %s)
            """,
            (
                document.id,
                document.filename,
                document.original_name,
                document.content_type,
                document.current_version_id,
                Jsonb(document.metadata),
            ),
        )

    def insert_version(self, conn: psycopg.Connection[Any], version: VersionRecord) -> None:
        conn.execute(
            """
            INSERT INTO document_versions
            (id, document_id, version_number, content_key, size_bytes, checksum,
             operations_summary, metadata)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                version.id,
                version.document_id,
                version.version_number,
                version.content_key,
                version.size_bytes,
                version.checksum,
                Jsonb(version.operations_summary),
                Jsonb(version.metadata),
            ),
        )

    def set_current_version(
        self,
        conn: psycopg.Connection[Any],
        document_id: UUID,
        version_id: UUID,
        filename: str,
        content_type: str | None,
    ) -> None:
        conn.execute(
            """
            UPDATE documents
            SET current_version_id = %s, filename = %s,
                content_type = COALESCE(%s, content_type), updated_at = NOW()
            WHERE id = %s
            """,
            (version_id, filename, content_type, document_id),
        )

    def undelete(self, conn: psycopg.Connection[Any], document_id: UUID) -> None:
        conn.execute(
            """
            UPDATE documents
            SET deleted_at = NULL, updated_at = NOW()
            WHERE id = %s AND deleted_at IS NOT NULL
            """,
            (document_id,),
        )

    def find_document(self, document_id: UUID) -> DocumentRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_DOCUMENT_COLUMNS} FROM documents d WHERE d.id = %s",
                    (document_id,),
                )
                row = cur.fetchone()
        return _row_to_document(row) if row is not None else None

    def find_version(self, version_id: UUID) -> VersionRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_VERSION_COLUMNS} FROM document_versions v WHERE v.id = %s",
                    (version_id,),
                )
                row = cur.fetchone()
        return _row_to_version(row) if row is not None else None

    def list_versions(self, document_id: UUID) -> list[VersionRecord]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_VERSION_COLUMNS}
                    FROM document_versions v
                    WHERE v.document_id = %s
                    ORDER BY v.version_number
                    """,
                    (document_id,),
                )
                rows = cur.fetchall()
        return [_row_to_version(row) for row in rows]

    def list_active_current_versions(self) -> list[tuple[UUID, UUID]]:
        """Return (document_id, current_version_id) for every non-deleted document."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id, current_version_id
                    FROM documents
                    WHERE deleted_at IS NULL
                    ORDER BY uploaded_at
                    """
                )
                rows = cur.fetchall()
        return [(row[0], row[1]) for row in rows]

    def soft_delete(self, document_id: UUID) -> bool:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET deleted_at = NOW(), updated_at = NOW()
                    WHERE id = %s AND deleted_at IS NULL
                    """,
                    (document_id,),
                )
                updated = cur.rowcount > 0
            conn.commit()
        return updated

    def update_operations_summary(self, version_id: UUID, summary: dict[str, Any]) -> None:
        """Merge keys into the version's operations_summary."""
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE document_versions
                SET operations_summary = operations_summary || %s
                WHERE id = %s
                """,
                (Jsonb(summary), version_id),
            )
            conn.commit()
