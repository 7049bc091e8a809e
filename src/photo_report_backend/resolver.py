"""
Resolution of image references to raw bytes.

URLs that point at source objects of our own bucket are read through the
storage provider instead of over HTTP.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from .exceptions import FetchError
from .models import ImageReference, ObjectRole
from .storage import StorageProvider
from .utils import key_from_url

logger = logging.getLogger(__name__)


class SourceResolver:
    def __init__(
        self,
        storage: StorageProvider,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self._storage = storage
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def resolve(self, ref: ImageReference) -> bytes:
        """
        Return the bytes behind ``ref``.

        Raises:
            NotFound: a self-owned source key is missing from storage
            BackendError: storage read failed
            FetchError: the remote URL could not be downloaded
        """
        if ref.data is not None:
            return ref.data

        url = ref.url or ""
        key = key_from_url(url)
        if ObjectRole.from_key(key) is ObjectRole.SOURCE:
            logger.debug(f"Reading {key} directly from storage")
            return await asyncio.to_thread(self._storage.read, key)

        return await self._fetch(url)

    async def _fetch(self, url: str) -> bytes:
        try:
            response = await self._http().get(url)
        except httpx.HTTPError as exc:
            raise FetchError(url, str(exc) or exc.__class__.__name__) from exc
        if not response.is_success:
            raise FetchError(url, f"HTTP {response.status_code}")
        return response.content
