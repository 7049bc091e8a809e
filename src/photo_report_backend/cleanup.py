"""
Storage reclamation.

- ``cleanup_sources``: delete the staged source images of a finished job
- ``cleanup_artifact``: delete a generated report once the client has it
- ``wipe_all``: delete everything under a prefix (emergency / admin)
- ``sweep_sources``: scheduled hygiene, only source images

Deletion is best-effort: individual failures are logged and counted, never
raised for the batch. Object roles come from ``ObjectRole.from_key``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from .exceptions import InvalidCleanupTarget, StorageError
from .models import CleanupReport, ObjectRole
from .storage import StorageProvider
from .utils import SOURCE_PREFIX, key_from_url

logger = logging.getLogger(__name__)


class CleanupCoordinator:
    def __init__(self, storage: StorageProvider) -> None:
        self._storage = storage

    async def _delete_many(self, keys: Iterable[str], report: CleanupReport) -> CleanupReport:
        async def delete_one(key: str) -> None:
            try:
                await asyncio.to_thread(self._storage.delete, key)
            except StorageError as exc:
                logger.error(f"Failed to delete {key}: {exc}")
                report.failed[key] = str(exc)
            else:
                report.deleted.append(key)

        await asyncio.gather(*(delete_one(key) for key in keys))
        report.deleted.sort()
        return report

    async def cleanup_sources(self, urls: Iterable[str]) -> CleanupReport:
        """Delete the source images behind ``urls``; other objects are rejected untouched."""
        report = CleanupReport()
        keys = []
        for url in urls:
            key = key_from_url(url)
            if ObjectRole.from_key(key) is ObjectRole.SOURCE:
                keys.append(key)
            else:
                logger.warning(f"Refusing to clean up non-source object {key!r}")
                report.rejected.append(url)

        await self._delete_many(dict.fromkeys(keys), report)
        logger.info(f"Source cleanup: deleted {report.deleted_count}, errors {report.error_count}, rejected {len(report.rejected)}")
        return report

    async def cleanup_artifact(self, url: str) -> str:
        """
        Delete one generated report.

        Raises:
            InvalidCleanupTarget: ``url`` does not name an artifact
            StorageError: the backend rejected the delete
        """
        key = key_from_url(url)
        if ObjectRole.from_key(key) is not ObjectRole.ARTIFACT:
            raise InvalidCleanupTarget(key)
        logger.info(f"Deleting PDF: {key}")
        await asyncio.to_thread(self._storage.delete, key)
        return key

    async def wipe_all(self, prefix: Optional[str] = None) -> CleanupReport:
        """
        Delete every object under ``prefix`` (the whole bucket if omitted).

        Raises:
            StorageError: listing the bucket failed; nothing was deleted
        """
        keys = await asyncio.to_thread(self._storage.list, prefix)
        logger.info(f"Wiping {len(keys)} objects (prefix={prefix!r})")
        report = await self._delete_many(keys, CleanupReport())
        logger.info(f"Wipe finished. Deleted: {report.deleted_count}, Errors: {report.error_count}")
        return report

    async def sweep_sources(self) -> CleanupReport:
        return await self.wipe_all(SOURCE_PREFIX)
