import logging

from .configuration import StorageSettings
from .s3_service import S3StorageProvider
from .storage import LocalStorageProvider, StorageProvider
from .supabase_service import SupabaseStorageProvider

logger = logging.getLogger(__name__)


class StorageProviderFactory:
    """Selects the storage backend once, from the configured credentials.

    Precedence: S3-compatible credentials, then Supabase credentials, then the
    local filesystem. There is no fallback between backends after selection.
    """

    @classmethod
    def create(cls, settings: StorageSettings) -> StorageProvider:
        if settings.has_s3_credentials:
            provider: StorageProvider = S3StorageProvider(
                bucket_name=settings.bucket_name,
                endpoint=settings.s3_endpoint,
                region=settings.s3_region,
                access_key_id=settings.s3_access_key_id,
                secret_access_key=settings.s3_secret_access_key,
            )
        elif settings.has_supabase_credentials:
            provider = SupabaseStorageProvider(
                url=settings.supabase_url,
                service_role_key=settings.supabase_service_role_key,
                bucket_name=settings.bucket_name,
            )
        else:
            provider = LocalStorageProvider(settings.local_dir, settings.local_public_path)

        logger.info(f"Using {provider.name} storage backend")
        return provider
