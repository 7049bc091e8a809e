"""
Object key naming and filesystem helpers.

Object keys double as a small protocol between ingestion, assembly and
cleanup: the prefix tells which role an object plays.

- ``img-<epoch_ms>-<index>-<name>``: transient source images
- ``pdf-<job_id>-<epoch_ms>.pdf``: generated report artifacts

Every other module goes through these helpers instead of building or parsing
keys by hand.
"""

from __future__ import annotations

import re
import time
from pathlib import Path
from urllib.parse import unquote, urlsplit

SOURCE_PREFIX = "img-"
ARTIFACT_PREFIX = "pdf-"

# Pattern to match characters that are not safe in object keys
# Allows: alphanumeric characters, dots, underscores, and hyphens
SANITIZE_PATTERN = re.compile(r"[^a-zA-Z0-9._-]+")


def epoch_millis() -> int:
    """Current wall-clock time in milliseconds."""
    return time.time_ns() // 1_000_000


def sanitize_name(name: str, fallback: str) -> str:
    """
    Generate a key-safe file name from user input.

    Args:
        name: The original file name
        fallback: Value returned when nothing usable is left

    Returns:
        A key-safe name or the fallback value

    Example:
        >>> sanitize_name("My Photo (1).png", "image")
        "My-Photo-1-.png"
        >>> sanitize_name("../", "image")
        "image"
    """
    cleaned = SANITIZE_PATTERN.sub("-", Path(name.strip()).name)
    cleaned = cleaned.strip("-_.")
    return cleaned or fallback


def source_key(index: int, filename: str, timestamp: int | None = None) -> str:
    """Build the key of a staged source image."""
    stamp = epoch_millis() if timestamp is None else timestamp
    return f"{SOURCE_PREFIX}{stamp}-{index}-{sanitize_name(filename, 'image')}"


def artifact_key(job_id: str, timestamp: int | None = None) -> str:
    """Build the key of a generated report, unique per job run."""
    stamp = epoch_millis() if timestamp is None else timestamp
    return f"{ARTIFACT_PREFIX}{sanitize_name(job_id, 'job')}-{stamp}.pdf"


def key_from_url(url: str) -> str:
    """
    Extract the candidate object key from a storage URL.

    The key is the last path segment, percent-decoded. Query strings and
    fragments (e.g. presigned URL signatures) are ignored.

    Example:
        >>> key_from_url("https://x.supabase.co/storage/v1/object/public/pdfs/img-1-0-a.png?t=1")
        "img-1-0-a.png"
    """
    path = urlsplit(url).path if "://" in url else url.split("?", 1)[0].split("#", 1)[0]
    return unquote(path.rstrip("/").rsplit("/", 1)[-1])


def ensure_directory(path: Path) -> Path:
    """
    Create a directory if it doesn't exist, including parent directories.

    Args:
        path: The directory path to create

    Returns:
        The same path object for chaining
    """
    path.mkdir(parents=True, exist_ok=True)
    return path
