"""Factory for configuring the object storage backend from config."""

from __future__ import annotations

from formvault.config import FormVaultConfig
from formvault.enums import StorageBackendKind
from formvault.storage.interfaces import ObjectStorage
from formvault.storage.s3 import S3StorageBackend
from formvault.storage.supabase import SupabaseStorageBackend


def build_storage_backend(config: FormVaultConfig) -> ObjectStorage:
    """Build the backend selected by config.storage_backend."""
    if config.storage_backend == StorageBackendKind.S3:
        return S3StorageBackend(
            bucket=config.storage_bucket,
            public_base_url=config.supabase_url,
            region=config.s3_region,
            endpoint_url=config.s3_endpoint_url,
            access_key_id=config.s3_access_key_id,
            secret_access_key=config.s3_secret_access_key,
        )
    return SupabaseStorageBackend(
        base_url=config.supabase_url,
        service_key=config.supabase_service_key,
        bucket=config.storage_bucket,
        timeout_seconds=config.http_timeout_seconds,
    )
