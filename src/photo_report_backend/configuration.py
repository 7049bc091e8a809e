"""
Configuration loading for the photo report backend.

Two sources are combined:

- Tunables (image bounds, page geometry, cover template) live in the packaged
  ``config/config.yaml`` and are loaded with OmegaConf. Callers may merge
  overrides on top with ``make_runtime_config``.
- Storage credentials and secrets come from environment variables, optionally
  provided through a ``.env`` file. They are read once at startup into a
  ``StorageSettings`` value that decides which backend is used.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

CONFIG_PATH = Path(__file__).resolve().parent / "config" / "config.yaml"


@lru_cache(maxsize=1)
def _load_default_config() -> DictConfig:
    if not CONFIG_PATH.exists():  # pragma: no cover - broken installation
        raise FileNotFoundError(f"Default config not found at {CONFIG_PATH}")
    return OmegaConf.load(CONFIG_PATH)


def get_default_config_container(resolve: bool = False) -> Dict[str, Any]:
    config = _load_default_config()
    return OmegaConf.to_container(config, resolve=resolve)  # type: ignore[return-value]


def make_runtime_config(overrides: Optional[Dict[str, Any]] = None) -> DictConfig:
    """
    Merge overrides onto the packaged defaults.

    The defaults are struct-locked, so an override naming an unknown key
    raises instead of being silently ignored.
    """
    base = OmegaConf.create(get_default_config_container(resolve=False))
    OmegaConf.set_struct(base, True)

    merged = DictConfig(OmegaConf.merge(base, OmegaConf.create(overrides or {})))
    return merged


@dataclass(frozen=True)
class StorageSettings:
    """Backend credentials and secrets, read once per process."""

    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_endpoint: str = ""
    s3_region: str = "us-east-1"
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    bucket_name: str = "pdfs"
    local_dir: str = "public/pdfs"
    local_public_path: str = "/pdfs"
    cron_secret: str = ""

    @property
    def has_s3_credentials(self) -> bool:
        return bool(self.s3_access_key_id and self.s3_secret_access_key)

    @property
    def has_supabase_credentials(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, config: Optional[DictConfig] = None) -> "StorageSettings":
        """
        Build settings from environment variables.

        When ``environ`` is omitted the process environment is used, after
        loading a ``.env`` file if one is present.
        """
        if environ is None:
            load_dotenv()
            environ = os.environ
        storage_defaults = (config or make_runtime_config()).storage

        return cls(
            s3_access_key_id=environ.get("SB_S3_ACCESS_KEY_ID", ""),
            s3_secret_access_key=environ.get("SB_S3_SECRET_ACCESS_KEY", ""),
            s3_endpoint=environ.get("SB_S3_ENDPOINT", ""),
            s3_region=environ.get("SB_S3_REGION") or "us-east-1",
            supabase_url=environ.get("SUPABASE_URL", ""),
            supabase_service_role_key=environ.get("SUPABASE_SERVICE_ROLE_KEY", ""),
            bucket_name=environ.get("SUPABASE_BUCKET_NAME") or storage_defaults.default_bucket,
            local_dir=environ.get("LOCAL_STORAGE_DIR") or storage_defaults.local_dir,
            local_public_path=storage_defaults.local_public_path,
            cron_secret=environ.get("CRON_SECRET", ""),
        )
