from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from assetworker.database.models import AssetRecord
from assetworker.database.repositories.asset_repository import AssetRepository


def _mock_connection(mock_get_conn: MagicMock) -> tuple[MagicMock, MagicMock]:
    """Wire up a mock connection + cursor and return (mock_conn, mock_cursor)."""
    mock_cursor = MagicMock()
    mock_conn = MagicMock()
    mock_conn.cursor.return_value.__enter__ = MagicMock(return_value=mock_cursor)
    mock_conn.cursor.return_value.__exit__ = MagicMock(return_value=False)
    mock_get_conn.return_value.__enter__ = MagicMock(return_value=mock_conn)
    mock_get_conn.return_value.__exit__ = MagicMock(return_value=False)
    return mock_conn, mock_cursor


def _asset_row(completed: bool = True) -> dict:
    now = datetime.now(timezone.utc)
    return {
        "id": uuid4(),
        "document_version_id": uuid4(),
        "asset_type": "preview",
        "mime_type": "image/png",
        "cardinality": 3,
        "metadata": {"object_count": 3},
        "completed_at": now if completed else None,
        "created_at": now,
        "updated_at": now,
    }


class TestFindAsset:
    @patch("assetworker.database.repositories.asset_repository.get_connection")
    def test_returns_record(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        row = _asset_row()
        mock_cursor.fetchone.return_value = row

        asset = AssetRepository().find_asset(row["document_version_id"], "preview")

        assert isinstance(asset, AssetRecord)
        assert asset.version_id == row["document_version_id"]
        assert asset.cardinality == 3
        assert asset.is_complete is True

    @patch("assetworker.database.repositories.asset_repository.get_connection")
    def test_partial_asset_is_not_complete(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _asset_row(completed=False)

        asset = AssetRepository().find_asset(uuid4(), "preview")

        assert asset is not None
        assert asset.is_complete is False

    @patch("assetworker.database.repositories.asset_repository.get_connection")
    def test_returns_none_when_missing(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = None

        assert AssetRepository().find_asset(uuid4(), "preview") is None


class TestUpsertAsset:
    @patch("assetworker.database.repositories.asset_repository.get_connection")
    def test_reopens_on_conflict(self, mock_get_conn: MagicMock) -> None:
        mock_conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchone.return_value = _asset_row(completed=False)

        AssetRepository().upsert_asset(uuid4(), "preview", "image/png", 3, {})

        sql = mock_cursor.execute.call_args.args[0]
        assert "ON CONFLICT (document_version_id, asset_type)" in sql
        assert "completed_at = NULL" in sql
        mock_conn.commit.assert_called_once()


class TestUpsertObject:
    def test_rejects_ordinal_below_one(self) -> None:
        with pytest.raises(ValueError, match="ordinal must be >= 1"):
            AssetRepository().upsert_object(uuid4(), 0, "key", {})

    @patch("assetworker.database.repositories.asset_repository.get_connection")
    def test_upserts_by_asset_and_ordinal(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        asset_id = uuid4()
        mock_cursor.fetchone.return_value = {
            "id": uuid4(),
            "asset_id": asset_id,
            "ordinal": 2,
            "content_key": "k/2",
            "metadata": {"width": 10},
            "created_at": None,
        }

        obj = AssetRepository().upsert_object(asset_id, 2, "k/2", {"width": 10})

        assert obj.ordinal == 2
        assert "ON CONFLICT (asset_id, ordinal)" in mock_cursor.execute.call_args.args[0]


class TestDeleteObjectsBeyond:
    @patch("assetworker.database.repositories.asset_repository.get_connection")
    def test_returns_deleted_keys(self, mock_get_conn: MagicMock) -> None:
        _conn, mock_cursor = _mock_connection(mock_get_conn)
        mock_cursor.fetchall.return_value = [("k/3",), ("k/4",)]
        asset_id = uuid4()

        keys = AssetRepository().delete_objects_beyond(asset_id, 2)

        assert keys == ["k/3", "k/4"]
        assert mock_cursor.execute.call_args.args[1] == (asset_id, 2)
