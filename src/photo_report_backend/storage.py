"""
Storage provider contract and the local filesystem backend.

All backends expose the same four operations (upload, read, delete, list)
over flat object keys. Remote backends live in ``s3_service`` and
``supabase_service``; ``factory.StorageProviderFactory`` picks one at startup.

Blocking I/O is kept synchronous here. Async callers go through
``asyncio.to_thread``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from .exceptions import BackendError, NotFound
from .utils import ensure_directory

logger = logging.getLogger(__name__)


class StorageProvider(ABC):
    """Contract shared by every storage backend."""

    name: str = "abstract"

    @abstractmethod
    def upload(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        """Write ``data`` at ``key``, replacing any existing object.

        Returns:
            A URL the caller can resolve to the stored object.

        Raises:
            BackendError: if the backend rejects the write.
        """

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Return the bytes stored at ``key``.

        Raises:
            NotFound: if no object exists at ``key``.
            BackendError: on transport or auth failures.
        """

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the object at ``key``.

        Raises:
            BackendError: if the backend rejects the delete.
        """

    @abstractmethod
    def list(self, prefix: Optional[str] = None) -> List[str]:
        """Return the sorted keys starting with ``prefix`` (all keys if omitted)."""

    @abstractmethod
    def public_url(self, key: str) -> str:
        """URL under which ``key`` is served once uploaded."""


class LocalStorageProvider(StorageProvider):
    """
    Stores objects as files in a single directory.

    URLs are path-prefixed (``/pdfs/<key>``) so a static file server mounted
    at ``public_path`` can serve them. Deleting a missing key is a no-op,
    unlike the remote backends.
    """

    name = "local"

    def __init__(self, base_dir: Path | str = Path("public/pdfs"), public_path: str = "/pdfs") -> None:
        self.base_dir = ensure_directory(Path(base_dir))
        self.public_path = "/" + public_path.strip("/")

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in {".", ".."}:
            raise BackendError(f"Invalid object key for local storage: {key!r}")
        return self.base_dir / key

    def upload(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        path = self._path_for(key)
        try:
            path.write_bytes(data)
        except OSError as exc:
            raise BackendError(f"Local upload failed for {key}: {exc}") from exc
        logger.debug(f"Stored {len(data)} bytes at {path}")
        return self.public_url(key)

    def read(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFound(key) from exc
        except OSError as exc:
            raise BackendError(f"Local read failed for {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise BackendError(f"Local delete failed for {key}: {exc}") from exc

    def list(self, prefix: Optional[str] = None) -> List[str]:
        if not self.base_dir.exists():
            return []
        return sorted(
            entry.name
            for entry in self.base_dir.iterdir()
            if entry.is_file() and (not prefix or entry.name.startswith(prefix))
        )

    def public_url(self, key: str) -> str:
        return f"{self.public_path}/{key}"
