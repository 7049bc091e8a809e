"""
Error taxonomy for the photo report pipeline.

Per-image errors (``IngestError`` and any ``StorageError`` raised while
resolving a source) are recovered by the orchestrator and only drop the affected image.
Everything else aborts the job and reaches the caller.
"""

from __future__ import annotations


class PhotoReportError(Exception):
    """Base exception for all pipeline errors."""


class StorageError(PhotoReportError):
    """Raised when the storage backend cannot complete an operation."""


class NotFound(StorageError):
    """Raised when a key does not exist in the storage backend."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Object not found: {key}")
        self.key = key


class BackendError(StorageError):
    """Raised on transport, auth or rejection failures from the backend."""


class IngestError(PhotoReportError):
    """Base class for recoverable per-image failures."""


class DecodeError(IngestError):
    """Raised when input bytes are not a decodable image."""


class FetchError(IngestError):
    """Raised when a remote image cannot be downloaded."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch image {url}: {reason}")
        self.url = url


class NoImagesProcessed(PhotoReportError):
    """Raised when every input of a job failed to resolve or decode."""

    def __init__(self, attempted: int) -> None:
        super().__init__(f"No images could be processed for PDF generation ({attempted} attempted)")
        self.attempted = attempted


class RenderError(PhotoReportError):
    """Raised when a page could not be produced."""


class JobTimeout(PhotoReportError):
    """Raised when a job exceeds the caller-imposed deadline."""


class InvalidCleanupTarget(PhotoReportError):
    """Raised when a cleanup request names an object of the wrong role."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Invalid file for cleanup: {key}")
        self.key = key
