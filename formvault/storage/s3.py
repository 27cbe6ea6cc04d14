"""S3-compatible storage backend (Supabase S3 gateway, AWS S3, MinIO).

boto3 is blocking, so every call is pushed to a worker thread.
"""

from __future__ import annotations

import asyncio
import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from formvault.errors import StorageError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _status_code(exc: ClientError) -> int | None:
    response = getattr(exc, "response", {}) or {}
    return (response.get("ResponseMetadata") or {}).get("HTTPStatusCode")


class S3StorageBackend:
    """S3 implementation of ObjectStorage.

    Public URLs still follow the Supabase public-object template so stored
    references stay resolvable regardless of the backend that wrote them.
    """

    def __init__(
        self,
        *,
        bucket: str,
        public_base_url: str,
        region: str | None = None,
        endpoint_url: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        client=None,
    ) -> None:
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        if client is None:
            client_kwargs = {
                "service_name": "s3",
                "config": Config(signature_version="s3v4", s3={"addressing_style": "path"}),
            }
            if region:
                client_kwargs["region_name"] = region
            if endpoint_url:
                client_kwargs["endpoint_url"] = endpoint_url
            if access_key_id:
                client_kwargs["aws_access_key_id"] = access_key_id
            if secret_access_key:
                client_kwargs["aws_secret_access_key"] = secret_access_key
            client = boto3.client(**client_kwargs)
        self._s3 = client

    async def issue_signed_url(self, path: str, ttl_seconds: int) -> str:
        # boto3 validates expires-in itself; guard against zero/negative.
        if ttl_seconds <= 0:
            ttl_seconds = 60
        try:
            url = await asyncio.to_thread(
                self._s3.generate_presigned_url,
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": path},
                ExpiresIn=int(ttl_seconds),
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Presign failed for {path}: {e}", path=path) from e
        logger.debug("Presigned %s (ttl=%s)", path, ttl_seconds)
        return url

    async def download_object(self, path: str) -> bytes:
        def _get() -> bytes:
            response = self._s3.get_object(Bucket=self.bucket, Key=path)
            return response["Body"].read()

        try:
            return await asyncio.to_thread(_get)
        except ClientError as e:
            raise StorageError(
                f"Download failed for {path}: {e}", path=path, status_code=_status_code(e)
            ) from e
        except BotoCoreError as e:
            raise StorageError(f"Download failed for {path}: {e}", path=path) from e

    async def _exists(self, path: str) -> bool:
        try:
            await asyncio.to_thread(self._s3.head_object, Bucket=self.bucket, Key=path)
            return True
        except ClientError as e:
            code = str(((e.response or {}).get("Error") or {}).get("Code") or "")
            if _status_code(e) == 404 or code in _NOT_FOUND_CODES:
                return False
            raise

    async def upload_object(
        self,
        path: str,
        data: bytes,
        *,
        cache_control: str = "3600",
        allow_overwrite: bool = False,
        content_type: str | None = None,
    ) -> None:
        extra = {"CacheControl": f"max-age={cache_control}"}
        if content_type:
            extra["ContentType"] = content_type
        try:
            if not allow_overwrite and await self._exists(path):
                raise StorageError(f"Object already exists: {path}", path=path, status_code=409)
            await asyncio.to_thread(
                self._s3.put_object, Bucket=self.bucket, Key=path, Body=data, **extra
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Upload failed for {path}: {e}", path=path) from e
        logger.info("Uploaded %s (%d bytes) to bucket %s", path, len(data), self.bucket)

    def public_url_for(self, path: str) -> str:
        return f"{self.public_base_url}/storage/v1/object/public/{self.bucket}/{path.lstrip('/')}"

    async def aclose(self) -> None:
        return None
