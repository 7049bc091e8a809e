"""
Supabase Storage backend.

Used when the service role key is configured but no S3-compatible
credentials are. Objects live at the root of a single bucket.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from supabase import create_client

from .exceptions import BackendError, NotFound
from .storage import StorageProvider

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 1000


def _is_not_found(exc: Exception) -> bool:
    status = str(getattr(exc, "status", "") or getattr(exc, "status_code", ""))
    return status == "404" or "not found" in str(exc).lower()


class SupabaseStorageProvider(StorageProvider):
    name = "supabase"

    def __init__(self, url: str, service_role_key: str, bucket_name: str = "pdfs", client: Any = None) -> None:
        self.bucket_name = bucket_name
        self._client = client or create_client(url, service_role_key)

    def _bucket(self) -> Any:
        return self._client.storage.from_(self.bucket_name)

    def public_url(self, key: str) -> str:
        return self._bucket().get_public_url(key)

    def upload(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        try:
            self._bucket().upload(key, data, file_options={"content-type": content_type, "upsert": "true"})
        except Exception as exc:
            raise BackendError(f"Supabase upload failed for {key}: {exc}") from exc
        logger.info(f"Uploaded {len(data)} bytes to supabase bucket {self.bucket_name}/{key}")
        return self.public_url(key)

    def read(self, key: str) -> bytes:
        try:
            return self._bucket().download(key)
        except Exception as exc:
            if _is_not_found(exc):
                raise NotFound(key) from exc
            raise BackendError(f"Supabase download failed for {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._bucket().remove([key])
        except Exception as exc:
            if _is_not_found(exc):
                raise NotFound(key) from exc
            raise BackendError(f"Supabase delete failed for {key}: {exc}") from exc

    def list(self, prefix: Optional[str] = None) -> List[str]:
        # The storage API lists folders, not key prefixes, so search the root
        # and filter the names ourselves.
        keys: set[str] = set()
        offset = 0
        while True:
            options = {"limit": LIST_PAGE_SIZE, "offset": offset}
            if prefix:
                options["search"] = prefix
            try:
                entries = self._bucket().list(None, options)
            except Exception as exc:
                raise BackendError(f"Supabase list failed for prefix {prefix!r}: {exc}") from exc

            for entry in entries:
                name = entry.get("name") or ""
                if name and entry.get("id") is not None and (not prefix or name.startswith(prefix)):
                    keys.add(name)
            if len(entries) < LIST_PAGE_SIZE:
                break
            offset += LIST_PAGE_SIZE
        return sorted(keys)
