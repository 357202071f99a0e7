from typing import Any
from uuid import UUID, uuid4

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from assetworker.database.connection import get_connection
from assetworker.database.models import AssetObjectRecord, AssetRecord

_ASSET_COLUMNS = """
    id, document_version_id, asset_type, mime_type, cardinality, metadata,
    completed_at, created_at, updated_at
"""

_OBJECT_COLUMNS = "id, asset_id, ordinal, content_key, metadata, created_at"


def _row_to_asset(row: dict[str, Any]) -> AssetRecord:
    return AssetRecord(
        id=row["id"],
        version_id=row["document_version_id"],
        asset_type=row["asset_type"],
        mime_type=row["mime_type"],
        cardinality=row["cardinality"],
        metadata=row["metadata"] or {},
        completed_at=row["completed_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_object(row: dict[str, Any]) -> AssetObjectRecord:
    return AssetObjectRecord(
        id=row["id"],
        asset_id=row["asset_id"],
        ordinal=row["ordinal"],
        content_key=row["content_key"],
        metadata=row["metadata"] or {},
        created_at=row["created_at"],
    )


class AssetRepository:
    """Database operations for document_assets and document_asset_objects."""

    def find_asset(self, version_id: UUID, asset_type: str) -> AssetRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_ASSET_COLUMNS}
                    FROM document_assets
                    WHERE document_version_id = %s AND asset_type = %s
                    """,
                    (version_id, asset_type),
                )
                row = cur.fetchone()
        return _row_to_asset(row) if row is not None else None

    def find_by_id(self, asset_id: UUID) -> AssetRecord | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_ASSET_COLUMNS} FROM document_assets WHERE id = %s",
                    (asset_id,),
                )
                row = cur.fetchone()
        return _row_to_asset(row) if row is not None else None

    def list_for_version(self, version_id: UUID) -> list[AssetRecord]:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_ASSET_COLUMNS}
                    FROM document_assets
                    WHERE document_version_id = %s
                    ORDER BY created_at, asset_type
                    """,
                    (version_id,),
                )
                rows = cur.fetchall()
        return [_row_to_asset(row) for row in rows]

    def upsert_asset(
        self,
        version_id: UUID,
        asset_type: str,
        mime_type: str,
        cardinality: int | None,
        metadata: dict[str, Any],
    ) -> AssetRecord:
        """Create or reopen the asset for (version, type).

        A reopened asset keeps its id and objects but loses completed_at until
        the producer finishes again.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO document_assets
                    (id, document_version_id, asset_type, mime_type, cardinality, metadata)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT (document_version_id, asset_type) DO UPDATE
                    SET mime_type = EXCLUDED.mime_type,
                        cardinality = EXCLUDED.cardinality,
                        metadata = EXCLUDED.metadata,
                        completed_at = NULL,
                        updated_at = NOW()
                    RETURNING {_ASSET_COLUMNS}
                    """,
                    (uuid4(), version_id, asset_type, mime_type, cardinality, Jsonb(metadata)),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError(f"Upsert of {asset_type} asset for version {version_id} returned no row")
        return _row_to_asset(row)

    def upsert_object(
        self,
        asset_id: UUID,
        ordinal: int,
        content_key: str,
        metadata: dict[str, Any],
    ) -> AssetObjectRecord:
        if ordinal < 1:
            raise ValueError(f"ordinal must be >= 1, got {ordinal}")
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO document_asset_objects (id, asset_id, ordinal, content_key, metadata)
                    VALUES (%s, %s, %s, %s, %s)
                    ON CONFLICT (asset_id, ordinal) DO UPDATE
                    SET content_key = EXCLUDED.content_key,
                        metadata = EXCLUDED.metadata
                    RETURNING {_OBJECT_COLUMNS}
                    """,
                    (uuid4(), asset_id, ordinal, content_key, Jsonb(metadata)),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError(f"Upsert of object {ordinal} for asset {asset_id} returned no row")
        return _row_to_object(row)

    def delete_objects_beyond(self, asset_id: UUID, max_ordinal: int) -> list[str]:
        """Delete objects with ordinal > max_ordinal and return their content keys."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM document_asset_objects
                    WHERE asset_id = %s AND ordinal > %s
                    RETURNING content_key
                    """,
                    (asset_id, max_ordinal),
                )
                keys = [row[0] for row in cur.fetchall()]
            conn.commit()
        return keys

    def mark_complete(
        self,
        asset_id: UUID,
        cardinality: int | None,
        metadata: dict[str, Any],
    ) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                UPDATE document_assets
                SET cardinality = %s, metadata = %s, completed_at = NOW(), updated_at = NOW()
                WHERE id = %s
                """,
                (cardinality, Jsonb(metadata), asset_id),
            )
            conn.commit()

    def list_objects(
        self,
        asset_id: UUID,
        start: int = 1,
        end: int | None = None,
    ) -> list[AssetObjectRecord]:
        """Objects with start <= ordinal <= end (end=None means no upper bound)."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_OBJECT_COLUMNS}
                    FROM document_asset_objects
                    WHERE asset_id = %s
                      AND ordinal >= %s
                      AND (%s::integer IS NULL OR ordinal <= %s::integer)
                    ORDER BY ordinal
                    """,
                    (asset_id, start, end, end),
                )
                rows = cur.fetchall()
        return [_row_to_object(row) for row in rows]

    def max_ordinal(self, asset_id: UUID) -> int:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT COALESCE(MAX(ordinal), 0) FROM document_asset_objects WHERE asset_id = %s",
                    (asset_id,),
                )
                row = cur.fetchone()
        return int(row[0]) if row is not None else 0
