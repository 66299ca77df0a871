"""
In-memory blob registry for the web target.

Browser recordings never touch the disk: the recorder materializes its
chunks into a blob here and hands out a revocable blob:<id> reference.
"""

import threading
import uuid
from typing import Dict, Optional, Tuple


BLOB_PREFIX = "blob:"


class BlobStore:
    """
    Thread-safe map of blob URIs to (bytes, mime type).

    Usage:
        store = BlobStore()
        uri = store.create(data, "audio/webm")
        data = store.read(uri)
        store.revoke(uri)
    """

    def __init__(self):
        self._blobs: Dict[str, Tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def create(self, data: bytes, mime_type: str) -> str:
        uri = f"{BLOB_PREFIX}{uuid.uuid4()}"
        with self._lock:
            self._blobs[uri] = (bytes(data), mime_type)
        return uri

    def exists(self, uri: str) -> bool:
        with self._lock:
            return uri in self._blobs

    def read(self, uri: str) -> bytes:
        """Raises KeyError for unknown or revoked URIs."""
        with self._lock:
            return self._blobs[uri][0]

    def size(self, uri: str) -> Optional[int]:
        with self._lock:
            entry = self._blobs.get(uri)
        return len(entry[0]) if entry else None

    def mime_type(self, uri: str) -> Optional[str]:
        with self._lock:
            entry = self._blobs.get(uri)
        return entry[1] if entry else None

    def revoke(self, uri: str) -> bool:
        """Drop a blob. Returns False if it was already gone."""
        with self._lock:
            return self._blobs.pop(uri, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)
