"""Bucket storage for videos and thumbnails.

Uses local disk for now, laid out as {UPLOAD_DIR}/{bucket}/{path} and served
under /uploads/{bucket}/{path}. Paths stored on video records are relative to
their bucket so the backend can be swapped for S3/MinIO later.
"""
import logging
import uuid
from pathlib import Path
from typing import Protocol

from studio.core.config import settings

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Protocol for storage backends. LocalStorage now, an object store later."""

    def save(self, bucket: str, data: bytes, ext: str) -> str:
        """Store under a fresh random name and return the bucket path."""
        ...

    def upload(self, bucket: str, path: str, data: bytes, upsert: bool = True) -> str:
        """Store under ``path``, overwriting when ``upsert``. Returns the path."""
        ...

    def delete(self, bucket: str, path: str) -> bool:
        ...

    def public_url(self, bucket: str, path: str | None) -> str | None:
        ...

    def local_path(self, bucket: str, path: str) -> Path:
        ...


class LocalStorage:
    """Store files on local disk. Path: uploads/{bucket}/{path}"""

    def __init__(self, base_dir: str | Path | None = None, base_url: str | None = None):
        self.base_dir = Path(base_dir or settings.UPLOAD_DIR).resolve()
        self.base_url = (base_url or settings.MEDIA_BASE_URL).rstrip("/")

    def _bucket_dir(self, bucket: str) -> Path:
        path = self.base_dir / bucket
        path.mkdir(parents=True, exist_ok=True)
        return path

    def local_path(self, bucket: str, path: str) -> Path:
        """Resolve a bucket path on disk. Rejects paths that escape the bucket."""
        root = self._bucket_dir(bucket)
        target = (root / path.lstrip("/")).resolve()
        if target == root or root not in target.parents:
            raise ValueError(f"Invalid storage path: {path}")
        return target

    def save(self, bucket: str, data: bytes, ext: str) -> str:
        return self.upload(bucket, f"{uuid.uuid4().hex}{ext}", data, upsert=False)

    def upload(self, bucket: str, path: str, data: bytes, upsert: bool = True) -> str:
        target = self.local_path(bucket, path)
        if target.exists() and not upsert:
            raise FileExistsError(f"{bucket}/{path} already exists")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug("[Storage] Wrote %d bytes to %s/%s", len(data), bucket, path)
        return path

    def delete(self, bucket: str, path: str) -> bool:
        """Delete file by bucket path. Returns True if deleted."""
        try:
            target = self.local_path(bucket, path)
        except ValueError:
            return False
        if not target.is_file():
            return False
        target.unlink()
        return True

    def public_url(self, bucket: str, path: str | None) -> str | None:
        if not path:
            return None
        return f"{self.base_url}/uploads/{bucket}/{path.lstrip('/')}"


# Singleton - swap implementation here when moving to an object store
_storage: StorageBackend | None = None


def get_storage() -> StorageBackend:
    global _storage
    if _storage is None:
        _storage = LocalStorage()
    return _storage
