"""Supabase Storage backend over the REST API."""

from __future__ import annotations

import logging

import httpx

from formvault.errors import StorageError

logger = logging.getLogger(__name__)


class SupabaseStorageBackend:
    """Supabase Storage implementation of ObjectStorage.

    Uses the service key for every call, so private buckets are readable
    through the authenticated download endpoint.
    """

    def __init__(
        self,
        *,
        base_url: str,
        service_key: str,
        bucket: str = "forms",
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self._storage_url = f"{self.base_url}/storage/v1"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def _object_url(self, kind: str | None, path: str) -> str:
        segment = f"object/{kind}" if kind else "object"
        return f"{self._storage_url}/{segment}/{self.bucket}/{path.lstrip('/')}"

    async def _request(self, method: str, url: str, path: str, **kwargs) -> httpx.Response:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StorageError(
                f"Storage returned {e.response.status_code} for {path}",
                path=path,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise StorageError(f"Storage request failed for {path}: {e}", path=path) from e
        return response

    async def issue_signed_url(self, path: str, ttl_seconds: int) -> str:
        response = await self._request(
            "POST",
            self._object_url("sign", path),
            path,
            json={"expiresIn": int(ttl_seconds)},
        )
        try:
            signed = response.json().get("signedURL") or ""
        except ValueError as e:
            raise StorageError(f"Malformed sign response for {path}", path=path) from e
        if not signed:
            raise StorageError(f"No signed URL returned for {path}", path=path)
        if signed.startswith("http"):
            return signed
        return f"{self._storage_url}/{signed.lstrip('/')}"

    async def download_object(self, path: str) -> bytes:
        response = await self._request("GET", self._object_url("authenticated", path), path)
        return response.content

    async def upload_object(
        self,
        path: str,
        data: bytes,
        *,
        cache_control: str = "3600",
        allow_overwrite: bool = False,
        content_type: str | None = None,
    ) -> None:
        headers = {
            "cache-control": f"max-age={cache_control}",
            "x-upsert": "true" if allow_overwrite else "false",
            "content-type": content_type or "application/octet-stream",
        }
        await self._request("POST", self._object_url(None, path), path, content=data, headers=headers)
        logger.info("Uploaded %s (%d bytes) to bucket %s", path, len(data), self.bucket)

    def public_url_for(self, path: str) -> str:
        return self._object_url("public", path)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
