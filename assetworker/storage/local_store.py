import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from pathlib import Path
from urllib.parse import quote, urlencode

from assetworker.storage.base import BaseContentStore, PresignedUrl
from assetworker.storage.exceptions import ContentNotFoundError, StorageError


class LocalContentStore(BaseContentStore):
    """Stores blobs as files under a root directory and signs read URLs with HMAC."""

    def __init__(self, root: Path, public_base_url: str, signing_secret: str) -> None:
        if not signing_secret:
            raise ValueError("signing_secret is required for presigned URLs")
        self._root = root.expanduser().resolve()
        self._public_base_url = public_base_url.rstrip("/")
        self._secret = signing_secret.encode("utf-8")

    def put(self, key: str, data: bytes, content_type: str | None = None) -> str:
        path = self._path_for(key)
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        except OSError as exc:
            raise StorageError(f"Failed to write '{key}': {exc}") from exc
        return key

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.is_file():
            raise ContentNotFoundError(f"Content not found: {key}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read '{key}': {exc}") from exc

    def presign(self, key: str, ttl_seconds: int) -> PresignedUrl:
        self._path_for(key)
        expires_at = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(
            seconds=ttl_seconds
        )
        expires = int(expires_at.timestamp())
        query = urlencode({"expires": expires, "signature": self._sign(key, expires)})
        url = f"{self._public_base_url}/{quote(key)}?{query}"
        return PresignedUrl(url=url, expires_at=expires_at)

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete '{key}': {exc}") from exc

    def verify_signature(self, key: str, expires: int, signature: str) -> bool:
        """Check a URL issued by presign: signature matches and it has not expired."""
        if expires <= int(datetime.now(timezone.utc).timestamp()):
            return False
        return hmac.compare_digest(self._sign(key, expires), signature)

    def _sign(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def _path_for(self, key: str) -> Path:
        candidate = (self._root / key.lstrip("/")).resolve()
        try:
            candidate.relative_to(self._root)
        except ValueError as exc:
            raise StorageError(f"Unsafe content key: {key}") from exc
        return candidate
