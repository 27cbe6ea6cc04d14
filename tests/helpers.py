"""Test doubles and model builders shared across the unit suite."""

import asyncio
from datetime import datetime

from formvault.errors import StorageError
from formvault.models.domain import Form, FormField, Submission

FORM_ID = "f0a1b2c3-0000-4000-8000-000000000001"


class FakeStorage:
    """In-memory ObjectStorage double.

    Records every issuance and download call. `fail_sign` and
    `fail_download` hold paths whose calls raise StorageError, and
    `sign_delay` makes issuance yield to the event loop first.
    """

    def __init__(self, bucket: str = "forms") -> None:
        self.bucket = bucket
        self.objects: dict[str, bytes] = {}
        self.sign_calls: list[tuple[str, int]] = []
        self.download_calls: list[str] = []
        self.uploads: list[dict] = []
        self.fail_sign: set[str] = set()
        self.fail_download: set[str] = set()
        self.sign_delay = 0.0
        self.closed = False

    async def issue_signed_url(self, path: str, ttl_seconds: int) -> str:
        self.sign_calls.append((path, ttl_seconds))
        if self.sign_delay:
            await asyncio.sleep(self.sign_delay)
        if path in self.fail_sign:
            raise StorageError(f"sign rejected for {path}", path=path, status_code=400)
        n = len(self.sign_calls)
        return f"https://x.supabase.co/storage/v1/object/sign/{self.bucket}/{path}?token=t{n}"

    async def download_object(self, path: str) -> bytes:
        self.download_calls.append(path)
        if path in self.fail_download or path not in self.objects:
            raise StorageError(f"download failed for {path}", path=path, status_code=404)
        return self.objects[path]

    async def upload_object(
        self,
        path: str,
        data: bytes,
        *,
        cache_control: str = "3600",
        allow_overwrite: bool = False,
        content_type: str | None = None,
    ) -> None:
        if path in self.objects and not allow_overwrite:
            raise StorageError(f"object exists: {path}", path=path, status_code=409)
        self.objects[path] = data
        self.uploads.append(
            {"path": path, "cache_control": cache_control, "content_type": content_type}
        )

    def public_url_for(self, path: str) -> str:
        return f"https://x.supabase.co/storage/v1/object/public/{self.bucket}/{path}"

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_form(form_id: str = FORM_ID, name: str = "Site Survey", **kw) -> Form:
    return Form(id=form_id, name=name, created_at=datetime(2024, 5, 1, 12, 0, 0), **kw)


def make_field(key: str, name: str, order: int, form_id: str = FORM_ID) -> FormField:
    return FormField(id=f"field-{key}", form_id=form_id, field_name=name, field_key=key, order_index=order)


def make_submission(
    submission_id: str,
    uploaded_files: list[str],
    *,
    data: dict | None = None,
    email: str = "ana@example.com",
    form_id: str = FORM_ID,
    created_at: datetime | None = None,
) -> Submission:
    return Submission(
        id=submission_id,
        form_id=form_id,
        submitted_data=data or {},
        uploaded_files=uploaded_files,
        user_email=email,
        created_at=created_at or datetime(2024, 5, 2, 9, 30, 0),
    )
