"""Tests for the S3-compatible storage backend with a mocked boto3 client."""

import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from formvault.errors import StorageError
from formvault.storage.s3 import S3StorageBackend


def _client_error(code: str, status: int) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        "HeadObject",
    )


@pytest.fixture
def s3_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def backend(s3_client: MagicMock) -> S3StorageBackend:
    return S3StorageBackend(bucket="forms", public_base_url="https://abc.supabase.co/", client=s3_client)


async def test_issue_signed_url_presigns_get_object(backend, s3_client):
    s3_client.generate_presigned_url.return_value = "https://s3.example.com/forms/a.png?X-Amz-Signature=s"

    url = await backend.issue_signed_url("a.png", 432000)

    assert url.startswith("https://s3.example.com/forms/a.png")
    s3_client.generate_presigned_url.assert_called_once_with(
        ClientMethod="get_object",
        Params={"Bucket": "forms", "Key": "a.png"},
        ExpiresIn=432000,
    )


async def test_download_wraps_client_error(backend, s3_client):
    s3_client.get_object.side_effect = _client_error("NoSuchKey", 404)

    with pytest.raises(StorageError) as exc_info:
        await backend.download_object("missing.png")
    assert exc_info.value.status_code == 404


async def test_download_reads_body(backend, s3_client):
    s3_client.get_object.return_value = {"Body": io.BytesIO(b"payload")}
    assert await backend.download_object("a.png") == b"payload"


async def test_upload_refuses_to_overwrite(backend, s3_client):
    s3_client.head_object.return_value = {}

    with pytest.raises(StorageError) as exc_info:
        await backend.upload_object("a.png", b"x")
    assert exc_info.value.status_code == 409
    s3_client.put_object.assert_not_called()


async def test_upload_new_object(backend, s3_client):
    s3_client.head_object.side_effect = _client_error("404", 404)

    await backend.upload_object("a.png", b"x", content_type="image/png")

    s3_client.put_object.assert_called_once_with(
        Bucket="forms", Key="a.png", Body=b"x", CacheControl="max-age=3600", ContentType="image/png"
    )


def test_public_url_uses_supabase_template(backend):
    assert backend.public_url_for("a/b.png") == "https://abc.supabase.co/storage/v1/object/public/forms/a/b.png"
