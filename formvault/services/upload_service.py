"""Respondent file uploads.

Validates files against the form's limits, stores them under a
per-submission folder and records the submission with canonical paths.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from formvault.dao.submission_dao import SubmissionDAO
from formvault.errors import UploadRejected
from formvault.models.domain import Form, Submission
from formvault.storage.interfaces import ObjectStorage

logger = logging.getLogger(__name__)


@dataclass
class UploadedFile:
    """A file received from a respondent.

    Attributes:
        file_name: Original filename.
        content_type: MIME type reported by the client.
        data: File bytes.
    """

    file_name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def _clean_form_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", name).lower()


def _clean_email(email: str) -> str:
    return re.sub(r"[^a-zA-Z0-9@.\-]", "_", email).lower()


def _mime_allowed(content_type: str, allowed: Sequence[str]) -> bool:
    for pattern in allowed:
        rx = re.escape(pattern).replace(r"\*", ".*")
        if re.fullmatch(rx, content_type or "", flags=re.IGNORECASE):
            return True
    return False


def storage_uuid_from_email(email: str) -> str:
    """Stable UUID-shaped identifier derived from an email.

    Uses a 32-bit rolling hash over UTF-16 code units, so the same email
    always maps to the same anonymous folder.
    """
    h = 0
    raw = email.encode("utf-16-le")
    for i in range(0, len(raw), 2):
        unit = raw[i] | (raw[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 0x100000000
    s = format(abs(h), "x").rjust(8, "0")
    return f"{s[:8]}-{s[:4]}-4{s[1:4]}-8{s[2:5]}-{s}{s[:4]}"


def build_anonymous_path(user_email: str, form_name: str, submission_id: str, file_name: str) -> str:
    """Path that hides the respondent's email: form/user_<hash>/submission/file."""
    clean_form = re.sub(r"\s+", "_", re.sub(r"[^a-zA-Z0-9\s]", "", form_name)).lower()
    user_id = "user_" + storage_uuid_from_email(user_email).replace("-", "")[:8]
    return f"{clean_form}/{user_id}/{submission_id}/{file_name}"


class UploadService:
    """Stores respondent uploads and records submissions."""

    def __init__(
        self,
        *,
        storage: ObjectStorage,
        submission_dao: SubmissionDAO,
        cache_control: str = "3600",
        anonymize_paths: bool = False,
    ) -> None:
        self._storage = storage
        self._submission_dao = submission_dao
        self._cache_control = cache_control
        self._anonymize = anonymize_paths

    def validate_files(self, form: Form, files: Sequence[UploadedFile]) -> None:
        """Check files against the form's count, size and type limits.

        Raises:
            UploadRejected: On the first violated limit.
        """
        if len(files) > form.max_file_count:
            raise UploadRejected(f"Maximum {form.max_file_count} files allowed")

        max_bytes = form.max_file_size * 1024 * 1024
        for f in files:
            if f.size > max_bytes:
                raise UploadRejected(
                    f'File "{f.file_name}" is too large (max {form.max_file_size}MB)'
                )
            if form.allowed_file_types and not _mime_allowed(f.content_type, form.allowed_file_types):
                raise UploadRejected(f'File "{f.file_name}" type not allowed')

    def build_object_path(self, form: Form, submission_id: str, user_email: str, file_name: str) -> str:
        """Canonical storage path for an uploaded file."""
        if self._anonymize:
            return build_anonymous_path(user_email, form.name, submission_id, file_name)
        return (
            f"{_clean_form_name(form.name)}_{form.id[:8]}/"
            f"{_clean_email(user_email)}/{submission_id}/{file_name}"
        )

    async def submit(
        self,
        form: Form,
        submitted_data: dict[str, Any],
        user_email: str,
        files: Sequence[UploadedFile],
    ) -> Submission:
        """Upload files and record the submission.

        Returns:
            The stored Submission, uploaded_files holding canonical paths.

        Raises:
            UploadRejected: Inactive form or invalid files.
            StorageError: An upload failed; nothing is recorded.
        """
        if not form.active:
            raise UploadRejected("This form is not accepting submissions")
        if not user_email.strip():
            raise UploadRejected("Email is required")
        self.validate_files(form, files)

        submission_id = str(uuid.uuid4())
        paths: list[str] = []
        for f in files:
            path = self.build_object_path(form, submission_id, user_email, f.file_name)
            await self._storage.upload_object(
                path,
                f.data,
                cache_control=self._cache_control,
                allow_overwrite=False,
                content_type=f.content_type,
            )
            paths.append(path)

        submission = await self._submission_dao.create_submission(
            submission_id=submission_id,
            form_id=form.id,
            submitted_data=submitted_data,
            uploaded_files=paths,
            user_email=user_email,
        )
        logger.info("Recorded submission %s for form %s (%d files)", submission_id, form.id, len(paths))
        return submission
