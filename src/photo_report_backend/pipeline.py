"""
Report generation pipeline.

One ``PdfPipeline.run`` call is one job:

1. resolve + normalize every input concurrently (per-image failures dropped)
2. render the cover page through the browser engine
3. append the content pages directly with PyMuPDF
4. upload the final PDF under a fresh ``pdf-`` key

Stages are strictly sequential; only step 1 fans out.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, List, Optional, Sequence

from .assembler import ContentAssembler, content_page_count
from .cover import CoverRenderer
from .exceptions import IngestError, JobTimeout, NoImagesProcessed, StorageError
from .images import ImageNormalizer
from .models import ImageReference, IngestResult, Job, NormalizedImage, PdfArtifact
from .resolver import SourceResolver
from .storage import StorageProvider
from .utils import artifact_key

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"

# Per-image failures that drop the image instead of failing the job
RECOVERABLE_ERRORS = (IngestError, StorageError)


def surviving_images(results: Sequence[IngestResult]) -> List[NormalizedImage]:
    """Successful images in input order; failed inputs leave no gap in the output."""
    return [result.image for result in sorted(results, key=lambda r: r.index) if result.image is not None]


class PdfPipeline:
    def __init__(
        self,
        storage: StorageProvider,
        resolver: SourceResolver,
        normalizer: ImageNormalizer,
        cover_renderer: CoverRenderer,
        assembler: ContentAssembler,
        max_concurrency: int = 16,
    ) -> None:
        self._storage = storage
        self._resolver = resolver
        self._normalizer = normalizer
        self._cover_renderer = cover_renderer
        self._assembler = assembler
        self._max_concurrency = max(1, max_concurrency)

    async def aclose(self) -> None:
        await self._resolver.aclose()

    async def run(self, job: Job, timeout: Optional[float] = None) -> PdfArtifact:
        """
        Execute the job and return the uploaded artifact.

        Args:
            job: The job to run
            timeout: Overall deadline in seconds; ``None`` waits indefinitely

        Raises:
            NoImagesProcessed: every input failed
            RenderError: the cover or the content pages could not be produced
            StorageError: the final upload failed
            JobTimeout: the deadline elapsed
        """
        in_flight: Dict[str, "asyncio.Future[str]"] = {}
        if timeout is None:
            return await self._run(job, in_flight)
        try:
            return await asyncio.wait_for(self._run(job, in_flight), timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.error(f"Job {job.job_id} abandoned after {timeout}s")
            await self._discard_uploads(in_flight)
            raise JobTimeout(f"Job {job.job_id} exceeded the {timeout}s deadline") from exc

    async def _discard_uploads(self, in_flight: Dict[str, "asyncio.Future[str]"]) -> None:
        # the upload thread cannot be cancelled; wait for it, then remove what it wrote
        for key, upload in in_flight.items():
            try:
                await upload
            except StorageError:
                continue
            try:
                await asyncio.to_thread(self._storage.delete, key)
                logger.warning(f"Discarded artifact {key} of a timed out job")
            except StorageError as exc:
                logger.error(f"Failed to discard artifact {key}: {exc}")

    async def _run(self, job: Job, in_flight: Dict[str, "asyncio.Future[str]"]) -> PdfArtifact:
        started = time.perf_counter()
        logger.info(f"Starting job {job.job_id} with {len(job.inputs)} inputs")

        results = await self.ingest(job.inputs)
        images = surviving_images(results)
        failed = len(results) - len(images)
        if not images:
            raise NoImagesProcessed(len(job.inputs))
        if failed:
            logger.warning(f"Job {job.job_id}: dropped {failed} of {len(results)} images")

        cover = await self._cover_renderer.render(job.job_id, len(images))
        document = await asyncio.to_thread(self._assembler.assemble, cover, images)

        key = artifact_key(job.job_id)
        upload = asyncio.ensure_future(asyncio.to_thread(self._storage.upload, document, key, PDF_CONTENT_TYPE))
        in_flight[key] = upload
        public_url = await asyncio.shield(upload)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(f"Job {job.job_id} finished in {elapsed_ms}ms: {public_url}")
        return PdfArtifact(
            public_url=public_url,
            key=key,
            execution_time_ms=elapsed_ms,
            image_count=len(images),
            page_count=1 + content_page_count(len(images)),
        )

    async def ingest(self, inputs: Sequence[ImageReference]) -> List[IngestResult]:
        """Resolve and normalize all inputs concurrently, one result per input."""
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def ingest_one(index: int, ref: ImageReference) -> IngestResult:
            async with semaphore:
                try:
                    data = await self._resolver.resolve(ref)
                    image = await asyncio.to_thread(self._normalizer.normalize, data)
                except RECOVERABLE_ERRORS as exc:
                    logger.warning(f"Skipping image {index} ({ref.describe()}): {exc}")
                    return IngestResult(index=index, source=ref.describe(), error=exc)
            return IngestResult(index=index, source=ref.describe(), image=image)

        return list(await asyncio.gather(*(ingest_one(i, ref) for i, ref in enumerate(inputs))))
