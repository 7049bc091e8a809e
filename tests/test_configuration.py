"""
Tests for the configuration layer.
"""

import pytest
from omegaconf.errors import ConfigKeyError

from photo_report_backend.configuration import StorageSettings, get_default_config_container, make_runtime_config


class TestRuntimeConfig:
    def test_packaged_defaults(self):
        config = make_runtime_config()
        assert config.images.max_dimension == 1024
        assert config.images.jpeg_quality == 75
        assert config.page.width == 595
        assert config.page.height == 842
        assert config.cover.format == "A4"

    def test_overrides_are_merged(self):
        config = make_runtime_config({"images": {"jpeg_quality": 60}})
        assert config.images.jpeg_quality == 60
        assert config.images.max_dimension == 1024

    def test_unknown_keys_are_rejected(self):
        with pytest.raises(ConfigKeyError):
            make_runtime_config({"images": {"no_such_option": 1}})

    def test_overrides_do_not_leak_into_defaults(self):
        make_runtime_config({"job": {"timeout_seconds": 1}})
        assert get_default_config_container()["job"]["timeout_seconds"] == 300


class TestStorageSettings:
    def test_empty_environment_uses_defaults(self):
        settings = StorageSettings.from_env({})
        assert settings.bucket_name == "pdfs"
        assert settings.local_dir == "public/pdfs"
        assert settings.local_public_path == "/pdfs"
        assert settings.s3_region == "us-east-1"
        assert not settings.has_s3_credentials
        assert not settings.has_supabase_credentials
        assert settings.cron_secret == ""

    def test_credentials_need_both_halves(self):
        assert not StorageSettings.from_env({"SB_S3_ACCESS_KEY_ID": "id"}).has_s3_credentials
        assert StorageSettings.from_env(
            {"SB_S3_ACCESS_KEY_ID": "id", "SB_S3_SECRET_ACCESS_KEY": "secret"}
        ).has_s3_credentials
        assert not StorageSettings.from_env({"SUPABASE_URL": "https://x.supabase.co"}).has_supabase_credentials

    def test_environment_overrides(self):
        settings = StorageSettings.from_env(
            {
                "SUPABASE_BUCKET_NAME": "reports",
                "LOCAL_STORAGE_DIR": "/tmp/reports",
                "SB_S3_REGION": "eu-central-1",
                "CRON_SECRET": "s3cret",
            }
        )
        assert settings.bucket_name == "reports"
        assert settings.local_dir == "/tmp/reports"
        assert settings.s3_region == "eu-central-1"
        assert settings.cron_secret == "s3cret"
