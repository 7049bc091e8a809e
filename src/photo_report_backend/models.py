from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .utils import ARTIFACT_PREFIX, SOURCE_PREFIX, epoch_millis


class ObjectRole(str, Enum):
    SOURCE = "source"
    ARTIFACT = "artifact"
    UNKNOWN = "unknown"

    @classmethod
    def from_key(cls, key: str) -> "ObjectRole":
        if key.startswith(SOURCE_PREFIX):
            return cls.SOURCE
        if key.startswith(ARTIFACT_PREFIX):
            return cls.ARTIFACT
        return cls.UNKNOWN


@dataclass(frozen=True)
class ImageReference:
    """
    One input image of a job: either inline bytes or a URL.

    Use ``from_bytes`` / ``from_url`` rather than the raw constructor.
    """

    data: Optional[bytes] = None
    url: Optional[str] = None
    mime_type: Optional[str] = None
    filename: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.data is None) == (self.url is None):
            raise ValueError("ImageReference needs exactly one of data or url")

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: Optional[str] = None, filename: Optional[str] = None) -> "ImageReference":
        return cls(data=data, mime_type=mime_type, filename=filename)

    @classmethod
    def from_url(cls, url: str) -> "ImageReference":
        return cls(url=url)

    @property
    def is_inline(self) -> bool:
        return self.data is not None

    def describe(self) -> str:
        if self.url is not None:
            return self.url
        return self.filename or f"<{len(self.data or b'')} inline bytes>"


@dataclass(frozen=True)
class NormalizedImage:
    data: bytes
    width: int
    height: int


@dataclass(frozen=True)
class IngestResult:
    """Outcome of resolving and normalizing one input, success or failure."""

    index: int
    source: str
    image: Optional[NormalizedImage] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.image is not None


@dataclass(frozen=True)
class StorageObject:
    key: str
    content_type: str
    data: bytes
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def role(self) -> ObjectRole:
        return ObjectRole.from_key(self.key)


@dataclass
class Job:
    """
    A single pipeline invocation.

    Attributes:
        inputs: Ordered image references; output pages follow this order
        job_id: Caller-supplied identifier, defaults to the epoch milliseconds
        started_at: UTC timestamp taken when the job was created
    """

    inputs: List[ImageReference]
    job_id: str = field(default_factory=lambda: str(epoch_millis()))
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class PdfArtifact:
    public_url: str
    key: str
    execution_time_ms: int
    image_count: int
    page_count: int

    def to_response(self) -> "PdfArtifactResponse":
        return PdfArtifactResponse(pdfUrl=self.public_url, executionTime=f"{self.execution_time_ms}ms")


@dataclass
class CleanupReport:
    deleted: List[str] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def deleted_count(self) -> int:
        return len(self.deleted)

    @property
    def error_count(self) -> int:
        return len(self.failed)


# Wire models. Field names follow the JSON contract consumed by the front end.


class PdfArtifactResponse(BaseModel):
    pdfUrl: str
    executionTime: str


class ErrorResponse(BaseModel):
    error: str


class UrlJobRequest(BaseModel):
    imageUrls: List[str] = Field(min_length=1)
    jobId: Optional[str] = None


class CleanupPdfRequest(BaseModel):
    url: str


class CleanupSourcesRequest(BaseModel):
    urls: List[str]


class CleanupResponse(BaseModel):
    success: bool
    deletedCount: int
    errorCount: int
    rejected: List[str] = Field(default_factory=list)
    message: Optional[str] = None

    @classmethod
    def from_report(cls, report: CleanupReport, message: Optional[str] = None) -> "CleanupResponse":
        return cls(
            success=True,
            deletedCount=report.deleted_count,
            errorCount=report.error_count,
            rejected=report.rejected,
            message=message,
        )


class UploadUrlRequest(BaseModel):
    fileName: str
    contentType: str = "application/octet-stream"


class UploadUrlResponse(BaseModel):
    uploadUrl: str
    publicUrl: str
