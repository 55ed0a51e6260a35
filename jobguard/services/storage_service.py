"""
Local blob storage for uploaded job postings.
"""

import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from jobguard.config import settings
from jobguard.utils.logging_config import StructuredLogger

logger = StructuredLogger(__name__)


@dataclass
class StoredFile:
    name: str          # generated, unique within the storage root
    original_name: str
    path: str
    size: int
    content_type: str


class LocalFileStorage:
    """Stores blobs under one directory. Deletion is idempotent."""

    def __init__(self, root: str):
        self.root = Path(root)

    def _unique_name(self, original_name: str) -> str:
        ext = Path(original_name).suffix.lower()
        return f"job-{int(time.time() * 1000)}-{secrets.token_hex(6)}{ext}"

    def save(self, data: bytes, content_type: str, original_name: str) -> StoredFile:
        self.root.mkdir(parents=True, exist_ok=True)
        name = self._unique_name(original_name)
        path = self.root / name
        path.write_bytes(data)
        logger.debug("File stored", path=str(path), size=len(data))
        return StoredFile(
            name=name,
            original_name=original_name,
            path=str(path),
            size=len(data),
            content_type=content_type,
        )

    def delete(self, path: Optional[str]) -> bool:
        """Remove a stored file. Returns False when there was nothing to remove."""
        if not path:
            return False
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        logger.debug("File deleted", path=path)
        return True


_storage = LocalFileStorage(settings.upload_dir)


def get_storage() -> LocalFileStorage:
    """FastAPI dependency; tests override it with a temporary directory."""
    return _storage
