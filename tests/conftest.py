"""
Pytest configuration and fixtures for Photo Report Backend tests.
"""

import io
import os
import shutil
import tempfile
import time

import httpx
import pymupdf
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Set test environment variables before importing the app
for name in ("SB_S3_ACCESS_KEY_ID", "SB_S3_SECRET_ACCESS_KEY", "SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"):
    os.environ[name] = ""
os.environ["LOCAL_STORAGE_DIR"] = tempfile.mkdtemp(prefix="photo_report_test_storage_")
os.environ["CRON_SECRET"] = "test-cron-secret"

from photo_report_backend.assembler import ContentAssembler
from photo_report_backend.cleanup import CleanupCoordinator
from photo_report_backend.exceptions import BackendError, RenderError
from photo_report_backend.images import ImageNormalizer
from photo_report_backend.job_manager import JobManager
from photo_report_backend.main import app, get_job_manager
from photo_report_backend.pipeline import PdfPipeline
from photo_report_backend.resolver import SourceResolver
from photo_report_backend.storage import LocalStorageProvider


def make_image(width=64, height=48, color=(200, 30, 30), fmt="PNG", mode="RGB"):
    """Encode a solid-color image of the given size."""
    buffer = io.BytesIO()
    fill = color if mode != "RGBA" else (*color, 128)
    Image.new(mode, (width, height), fill).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeCoverRenderer:
    """Builds a one-page cover with PyMuPDF instead of launching a browser."""

    def __init__(self):
        self.calls = []

    async def render(self, job_id, image_count):
        self.calls.append((job_id, image_count))
        document = pymupdf.open()
        page = document.new_page(width=595, height=842)
        page.insert_text((72, 72), f"Image Report {job_id}: {image_count} images")
        data = document.tobytes()
        document.close()
        return data


class FailingCoverRenderer(FakeCoverRenderer):
    """Cover renderer whose browser never produces a page."""

    async def render(self, job_id, image_count):
        self.calls.append((job_id, image_count))
        raise RenderError("Cover rendering failed: browser crashed")


class ArtifactRejectingStorage(LocalStorageProvider):
    """Local storage that accepts source images but rejects every PDF upload."""

    def upload(self, data, key, content_type="application/octet-stream"):
        if key.startswith("pdf-"):
            raise BackendError(f"upload rejected for {key}")
        return super().upload(data, key, content_type)


class SlowUploadStorage(LocalStorageProvider):
    """Local storage whose uploads block the calling thread for a while."""

    def __init__(self, base_dir, delay):
        super().__init__(base_dir)
        self.delay = delay

    def upload(self, data, key, content_type="application/octet-stream"):
        time.sleep(self.delay)
        return super().upload(data, key, content_type)


class FlakyStorage(LocalStorageProvider):
    """Local storage whose deletes fail for selected keys."""

    def __init__(self, base_dir, failing_keys=()):
        super().__init__(base_dir)
        self.failing_keys = set(failing_keys)
        self.deleted = []

    def delete(self, key):
        if key in self.failing_keys:
            raise BackendError(f"transient failure deleting {key}")
        super().delete(key)
        self.deleted.append(key)


@pytest.fixture(scope="session", autouse=True)
def test_storage_dir():
    """Remove the app's storage directory after all tests."""
    storage_dir = os.environ["LOCAL_STORAGE_DIR"]
    yield storage_dir
    shutil.rmtree(storage_dir, ignore_errors=True)


@pytest.fixture
def storage(tmp_path):
    return LocalStorageProvider(tmp_path / "bucket", public_path="/pdfs")


@pytest.fixture
def remote_images():
    """Remote URL -> response body. Missing URLs answer 404."""
    return {}


@pytest.fixture
def http_client(remote_images):
    def handler(request: httpx.Request) -> httpx.Response:
        body = remote_images.get(str(request.url))
        if body is None:
            return httpx.Response(404, content=b"missing")
        return httpx.Response(200, content=body, headers={"content-type": "image/png"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def cover_renderer():
    return FakeCoverRenderer()


@pytest.fixture
def pipeline(storage, http_client, cover_renderer):
    return PdfPipeline(
        storage=storage,
        resolver=SourceResolver(storage, client=http_client),
        normalizer=ImageNormalizer(),
        cover_renderer=cover_renderer,
        assembler=ContentAssembler(),
        max_concurrency=4,
    )


@pytest.fixture
def job_manager(storage, pipeline):
    return JobManager(storage=storage, pipeline=pipeline, cleanup=CleanupCoordinator(storage))


@pytest.fixture
def client(job_manager):
    """Create a test client whose routes use the per-test job manager."""
    app.dependency_overrides[get_job_manager] = lambda: job_manager
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def cron_secret():
    return "test-cron-secret"
