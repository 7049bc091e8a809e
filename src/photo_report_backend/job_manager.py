"""
Job lifecycle for report generation requests.

This module ties the pipeline to its storage side effects:
- Staging uploaded images as source objects in the bucket
- Running the pipeline against the staged URLs
- Releasing the staged sources once the report exists

Jobs are not registered anywhere; their state lives only for the duration of
the request that runs them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from omegaconf import DictConfig

from .assembler import ContentAssembler, PageGeometry
from .cleanup import CleanupCoordinator
from .configuration import StorageSettings, make_runtime_config
from .cover import CoverRenderer
from .factory import StorageProviderFactory
from .images import ImageNormalizer
from .models import CleanupReport, ImageReference, Job, PdfArtifact, StorageObject
from .pipeline import PdfPipeline
from .resolver import SourceResolver
from .storage import StorageProvider
from .utils import epoch_millis, source_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Upload:
    """An image received from a client, before it is staged."""

    filename: str
    content_type: str
    data: bytes


class JobManager:
    """
    Entry point used by the ingress for one report request.

    Attributes:
        storage: The process-wide storage backend
        pipeline: Report generation pipeline bound to ``storage``
        cleanup: Cleanup coordinator bound to ``storage``
        timeout: Default overall deadline per job in seconds
    """

    def __init__(
        self,
        storage: StorageProvider,
        pipeline: PdfPipeline,
        cleanup: CleanupCoordinator,
        timeout: Optional[float] = None,
    ) -> None:
        self.storage = storage
        self.pipeline = pipeline
        self.cleanup = cleanup
        self.timeout = timeout

    async def stage_sources(self, uploads: Sequence[Upload]) -> List[str]:
        """
        Upload client images as source objects.

        Returns:
            Public URLs in the same order as ``uploads``
        """
        timestamp = epoch_millis()
        objects = [
            StorageObject(
                key=source_key(index, upload.filename, timestamp),
                content_type=upload.content_type or "application/octet-stream",
                data=upload.data,
            )
            for index, upload in enumerate(uploads)
        ]
        urls = await asyncio.gather(
            *(asyncio.to_thread(self.storage.upload, obj.data, obj.key, obj.content_type) for obj in objects)
        )
        logger.info(f"Staged {len(urls)} source images")
        return list(urls)

    async def generate(self, job: Job, timeout: Optional[float] = None) -> PdfArtifact:
        return await self.pipeline.run(job, timeout=timeout if timeout is not None else self.timeout)

    async def create_job_from_uploads(
        self,
        uploads: Sequence[Upload],
        job_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[PdfArtifact, List[str]]:
        """
        Stage uploads, then generate the report from the staged URLs.

        The staged URLs are returned so the caller can release them after the
        response has been sent. On failure they are left in place for the
        emergency cleanup path.
        """
        urls = await self.stage_sources(uploads)
        job = Job(inputs=[ImageReference.from_url(url) for url in urls])
        if job_id:
            job.job_id = job_id
        artifact = await self.generate(job, timeout=timeout)
        return artifact, urls

    async def release_sources(self, urls: Sequence[str]) -> CleanupReport:
        return await self.cleanup.cleanup_sources(urls)

    async def aclose(self) -> None:
        await self.pipeline.aclose()


def build_job_manager(
    settings: StorageSettings,
    config: Optional[DictConfig] = None,
    storage: Optional[StorageProvider] = None,
    cover_renderer: Optional[CoverRenderer] = None,
) -> JobManager:
    """Wire a JobManager from settings. ``storage`` and ``cover_renderer`` may be injected."""
    config = config or make_runtime_config()
    storage = storage or StorageProviderFactory.create(settings)

    pipeline = PdfPipeline(
        storage=storage,
        resolver=SourceResolver(storage, timeout=config.images.fetch_timeout_seconds),
        normalizer=ImageNormalizer(config.images.max_dimension, config.images.jpeg_quality),
        cover_renderer=cover_renderer or CoverRenderer(
            title=config.cover.title,
            description=config.cover.description,
            page_format=config.cover.format,
            margin=config.cover.margin,
            headless=config.cover.headless,
            launch_args=list(config.cover.launch_args),
        ),
        assembler=ContentAssembler(
            PageGeometry(
                width=config.page.width,
                height=config.page.height,
                margin=config.page.margin,
                gap=config.page.gap,
            )
        ),
        max_concurrency=config.images.max_concurrency,
    )
    return JobManager(
        storage=storage,
        pipeline=pipeline,
        cleanup=CleanupCoordinator(storage),
        timeout=config.job.timeout_seconds,
    )
