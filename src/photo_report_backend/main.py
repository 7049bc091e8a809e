from __future__ import annotations

import hmac
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, File, Header, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .configuration import StorageSettings, make_runtime_config
from .exceptions import (
    InvalidCleanupTarget,
    JobTimeout,
    NoImagesProcessed,
    NotFound,
    PhotoReportError,
    StorageError,
)
from .job_manager import JobManager, Upload, build_job_manager
from .models import (
    CleanupPdfRequest,
    CleanupResponse,
    CleanupSourcesRequest,
    ImageReference,
    Job,
    PdfArtifactResponse,
    UploadUrlRequest,
    UploadUrlResponse,
    UrlJobRequest,
)
from .s3_service import S3StorageProvider
from .storage import LocalStorageProvider
from .utils import source_key

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await job_manager.aclose()


app = FastAPI(title="Photo Report API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

settings = StorageSettings.from_env()
job_manager = build_job_manager(settings, make_runtime_config())

if isinstance(job_manager.storage, LocalStorageProvider):
    app.mount(
        job_manager.storage.public_path,
        StaticFiles(directory=job_manager.storage.base_dir),
        name="files",
    )


def get_job_manager() -> JobManager:
    return job_manager


def get_settings() -> StorageSettings:
    return settings


def require_cleanup_secret(
    key: Optional[str] = Query(None),
    x_cleanup_secret: Optional[str] = Header(None),
    current: StorageSettings = Depends(get_settings),
) -> None:
    """Gate trigger endpoints behind CRON_SECRET when it is configured."""
    if not current.cron_secret:
        return
    provided = x_cleanup_secret or key or ""
    if not hmac.compare_digest(provided.encode(), current.cron_secret.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")


ERROR_STATUS = {
    NoImagesProcessed: 422,
    InvalidCleanupTarget: 400,
    NotFound: 404,
    JobTimeout: 504,
    StorageError: 502,
}


@app.exception_handler(PhotoReportError)
async def pipeline_error_handler(request: Request, exc: PhotoReportError) -> JSONResponse:
    status = next((code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)), 500)
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status, content={"error": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.get("/healthz")
def healthcheck(manager: JobManager = Depends(get_job_manager)) -> dict[str, str]:
    return {"status": "ok", "storage": manager.storage.name}


@app.post("/jobs", response_model=PdfArtifactResponse)
async def create_job(
    background_tasks: BackgroundTasks,
    images: Optional[List[UploadFile]] = File(None),
    manager: JobManager = Depends(get_job_manager),
) -> PdfArtifactResponse:
    if not images:
        raise HTTPException(status_code=400, detail="No images uploaded")

    uploads = []
    for image in images:
        uploads.append(
            Upload(
                filename=image.filename or "image",
                content_type=image.content_type or "application/octet-stream",
                data=await image.read(),
            )
        )
        await image.close()

    artifact, staged_urls = await manager.create_job_from_uploads(uploads)
    background_tasks.add_task(manager.release_sources, staged_urls)
    return artifact.to_response()


@app.post("/jobs/from-urls", response_model=PdfArtifactResponse)
async def create_job_from_urls(
    request: UrlJobRequest,
    background_tasks: BackgroundTasks,
    manager: JobManager = Depends(get_job_manager),
) -> PdfArtifactResponse:
    job = Job(inputs=[ImageReference.from_url(url) for url in request.imageUrls])
    if request.jobId:
        job.job_id = request.jobId
    artifact = await manager.generate(job)
    background_tasks.add_task(manager.release_sources, request.imageUrls)
    return artifact.to_response()


@app.post("/upload-url", response_model=UploadUrlResponse)
def create_upload_url(request: UploadUrlRequest, manager: JobManager = Depends(get_job_manager)) -> UploadUrlResponse:
    if not isinstance(manager.storage, S3StorageProvider):
        raise HTTPException(status_code=501, detail="Direct uploads require the S3 storage backend")
    key = source_key(0, request.fileName)
    upload_url = manager.storage.generate_presigned_upload_url(key, request.contentType)
    return UploadUrlResponse(uploadUrl=upload_url, publicUrl=manager.storage.public_url(key))


@app.post("/cleanup-pdf")
async def cleanup_pdf(request: CleanupPdfRequest, manager: JobManager = Depends(get_job_manager)) -> dict[str, bool]:
    await manager.cleanup.cleanup_artifact(request.url)
    return {"success": True}


@app.post("/cleanup-sources", response_model=CleanupResponse)
async def cleanup_sources(request: CleanupSourcesRequest, manager: JobManager = Depends(get_job_manager)) -> CleanupResponse:
    report = await manager.cleanup.cleanup_sources(request.urls)
    return CleanupResponse.from_report(report)


@app.post("/emergency-cleanup", response_model=CleanupResponse, dependencies=[Depends(require_cleanup_secret)])
async def emergency_cleanup(manager: JobManager = Depends(get_job_manager)) -> CleanupResponse:
    report = await manager.cleanup.wipe_all()
    return CleanupResponse.from_report(report, message="Emergency cleanup completed")


@app.get("/cron/cleanup", response_model=CleanupResponse, dependencies=[Depends(require_cleanup_secret)])
async def cron_cleanup(manager: JobManager = Depends(get_job_manager)) -> CleanupResponse:
    logger.info("[CRON] Starting cleanup...")
    report = await manager.cleanup.sweep_sources()
    return CleanupResponse.from_report(report, message="Daily cleanup completed successfully")
