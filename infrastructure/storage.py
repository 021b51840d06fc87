# ============================================================================
# BLOB STORAGE INFRASTRUCTURE
# ============================================================================
# EPOCH: 1 - RECIPE EXECUTION
# STATUS: Infrastructure - Generated media persistence
# PURPOSE: Blob store contract used by the upload action
# CREATED: 08 OCT 2026
# ============================================================================
"""
Blob Storage Infrastructure

Generated images and videos are persisted through BlobStore:
- upload: store bytes under container/path, return a descriptor with its URL
- public_url: URL a client can fetch the blob from
- exists / download: read-side helpers

InMemoryBlobStore keeps blobs in a dict and hands out memory:// URLs; a
cloud-backed store implements the same contract.
"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


_CONTENT_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".json": "application/json",
    ".txt": "text/plain",
}


def detect_content_type(path: str) -> str:
    """Auto-detect content type from file extension."""
    return _CONTENT_TYPES.get(Path(path).suffix.lower(), "application/octet-stream")


class BlobStore(ABC):
    """Abstract blob store."""

    @abstractmethod
    async def upload(
        self,
        container: str,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Store bytes.

        Returns:
            {"container", "path", "url", "size", "content_type"}
        """

    @abstractmethod
    def public_url(self, container: str, path: str) -> str:
        """Fetchable URL for a stored blob."""

    @abstractmethod
    async def exists(self, container: str, path: str) -> bool:
        ...

    @abstractmethod
    async def download(self, container: str, path: str) -> bytes:
        ...


class InMemoryBlobStore(BlobStore):
    """Dict-backed blob store for tests and local development."""

    def __init__(self, base_url: str = "memory://blobs"):
        self.base_url = base_url.rstrip("/")
        self._blobs: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._lock = threading.Lock()

    async def upload(
        self,
        container: str,
        path: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        content_type = content_type or detect_content_type(path)
        with self._lock:
            self._blobs[(container, path)] = {
                "data": bytes(data),
                "content_type": content_type,
                "uploaded_at": datetime.utcnow(),
            }
        logger.debug(f"Uploaded {len(data)} bytes to {container}/{path}")
        return {
            "container": container,
            "path": path,
            "url": self.public_url(container, path),
            "size": len(data),
            "content_type": content_type,
        }

    def public_url(self, container: str, path: str) -> str:
        return f"{self.base_url}/{container}/{path.lstrip('/')}"

    async def exists(self, container: str, path: str) -> bool:
        with self._lock:
            return (container, path) in self._blobs

    async def download(self, container: str, path: str) -> bytes:
        with self._lock:
            blob = self._blobs.get((container, path))
        if blob is None:
            raise FileNotFoundError(f"Blob not found: {container}/{path}")
        return blob["data"]

    def list_blobs(self, container: str) -> List[str]:
        with self._lock:
            return sorted(path for (c, path) in self._blobs if c == container)


__all__ = ["BlobStore", "InMemoryBlobStore", "detect_content_type"]
