"""Bulk export of form submissions.

Two outputs over the same submissions:

- a CSV with one row per submission and per-file name/URL column pairs,
  filled with long-lived access URLs;
- a ZIP archive per submission bundling the actual file bytes.

A single broken file never aborts an export: it is recorded inline (CSV)
or skipped (ZIP). Only failing to read the dataset itself is fatal.
"""

from __future__ import annotations

import csv
import io
import logging
import re
import zipfile
from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from formvault.dao.form_dao import FormDAO
from formvault.dao.submission_dao import SubmissionDAO
from formvault.errors import NotFoundError, StorageError, TotalFailure
from formvault.models.domain import Form, FormField, Submission
from formvault.models.exports import (
    CSV_MEDIA_TYPE,
    ZIP_MEDIA_TYPE,
    ArchiveEntry,
    ExportArtifact,
    ExportRow,
)
from formvault.observability.trace_context import new_trace_id, set_trace
from formvault.observability.trace_logging import trace_event
from formvault.services.signed_url_cache import SignedUrlCache
from formvault.storage.interfaces import ObjectStorage
from formvault.storage.paths import DEFAULT_BUCKET, file_name_from_path, try_resolve

logger = logging.getLogger(__name__)

UNKNOWN_FILE_NAME = "Unknown file"
INVALID_PATH_MARKER = "Error: Invalid file path"
ISSUANCE_FAILED_MARKER = "Error: Could not generate download URL"
GENERATOR_NAME = "FormVault"

_UNSAFE_NAME_RE = re.compile(r"[^a-z0-9]", flags=re.IGNORECASE)


def safe_form_name(name: str) -> str:
    """Form name with every non-alphanumeric character replaced by '_'."""
    return _UNSAFE_NAME_RE.sub("_", name)


def csv_filename(form_name: str, exported_at: datetime) -> str:
    return f"{safe_form_name(form_name).lower()}_export_{exported_at.strftime('%Y-%m-%d')}.csv"


def archive_filename(form_name: str, submission: Submission) -> str:
    return f"{safe_form_name(form_name)}_{submission.user_email}_{submission.short_id}.zip"


def submission_folder(submission: Submission) -> str:
    return f"submission_{submission.short_id}"


def _ttl_label(ttl_seconds: int) -> str:
    days, rest = divmod(ttl_seconds, 86400)
    if days and not rest:
        return f"{days} day" + ("s" if days != 1 else "")
    hours, rest = divmod(ttl_seconds, 3600)
    if hours and not rest:
        return f"{hours} hour" + ("s" if hours != 1 else "")
    return f"{ttl_seconds} seconds"


class ExportService:
    """Builds CSV and ZIP exports of submissions.

    Submissions and files are processed one at a time, in input order, so
    repeated exports of the same data produce the same column layout.
    """

    def __init__(
        self,
        *,
        storage: ObjectStorage,
        cache: SignedUrlCache,
        form_dao: FormDAO | None = None,
        submission_dao: SubmissionDAO | None = None,
        export_ttl_seconds: int = 432000,
        reuse_margin_seconds: int = 60,
        bucket: str = DEFAULT_BUCKET,
    ) -> None:
        """Initialize the export service.

        Args:
            storage: Object storage backend for direct downloads.
            cache: Shared signed URL cache/issuer.
            form_dao: Form reader (required for the *_by_id entrypoints).
            submission_dao: Submission reader (same).
            export_ttl_seconds: Lifetime of URLs written into CSV exports.
            reuse_margin_seconds: A cached URL is reused only if it has at
                least export_ttl_seconds - reuse_margin_seconds left, so the
                validity promised in the CSV header holds.
            bucket: Bucket name embedded in historical storage URLs.
        """
        self._storage = storage
        self._cache = cache
        self._form_dao = form_dao
        self._submission_dao = submission_dao
        self.export_ttl_seconds = export_ttl_seconds
        self._min_remaining = max(export_ttl_seconds - reuse_margin_seconds, 0)
        self._bucket = bucket

    # ------------------------------------------------------------------
    # Tabular export
    # ------------------------------------------------------------------

    async def _file_cells(self, reference: str) -> tuple[str, str]:
        path = try_resolve(reference, bucket=self._bucket)
        if path is None:
            logger.warning("Could not extract file path for CSV export: %s", reference)
            trace_event("export.csv.file.error", reference=reference, error="invalid_path")
            return UNKNOWN_FILE_NAME, INVALID_PATH_MARKER

        file_name = file_name_from_path(path)
        url = await self._cache.get_or_issue(
            path,
            self.export_ttl_seconds,
            min_ttl_remaining=self._min_remaining,
        )
        if not url:
            trace_event("export.csv.file.error", path=path, error="issuance_failed")
            return file_name, ISSUANCE_FAILED_MARKER
        return file_name, url

    async def build_rows(
        self,
        fields: Sequence[FormField],
        submissions: Sequence[Submission],
    ) -> tuple[int, list[ExportRow]]:
        """Build export rows.

        Returns:
            (width, rows) where width is the number of file column pairs.
        """
        width = max([len(s.uploaded_files) for s in submissions] + [1])
        rows: list[ExportRow] = []

        for submission in submissions:
            files = [await self._file_cells(ref) for ref in submission.uploaded_files]
            files.extend([("", "")] * (width - len(files)))
            rows.append(
                ExportRow(
                    short_id=submission.short_id,
                    field_values=[
                        "" if submission.submitted_data.get(f.field_key) is None
                        else str(submission.submitted_data.get(f.field_key))
                        for f in fields
                    ],
                    file_count=len(submission.uploaded_files),
                    files=files,
                )
            )
        return width, rows

    def _header_block(self, form: Form, count: int, exported_at: datetime) -> list[list[str]]:
        return [
            [f"Form: {form.name}"],
            [f"Export Date: {exported_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}"],
            [f"Total Submissions: {count}"],
            [f"Generated by: {GENERATOR_NAME}"],
            [""],
            [
                f"IMPORTANT: Download URLs are valid for {_ttl_label(self.export_ttl_seconds)}. "
                "Files are organized in separate columns for easy access."
            ],
            [""],
        ]

    async def export_csv(
        self,
        form: Form,
        fields: Sequence[FormField],
        submissions: Sequence[Submission],
        *,
        now: datetime | None = None,
    ) -> ExportArtifact:
        """Build the CSV export for a form.

        Args:
            form: Exported form.
            fields: Form fields in display order.
            submissions: Submissions in the order rows should appear.
            now: Export timestamp (defaults to current UTC time).

        Returns:
            ExportArtifact holding the UTF-8 CSV.
        """
        exported_at = now or datetime.now(timezone.utc)
        set_trace(new_trace_id())
        trace_event("export.csv.start", form_id=form.id, submissions=len(submissions))

        width, rows = await self.build_rows(fields, submissions)

        header = ["Submission ID", *[f.field_name for f in fields], "Files Count"]
        for i in range(1, width + 1):
            header.append(f"File {i} Name")
            header.append(f"File {i} URL")

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerows(self._header_block(form, len(submissions), exported_at))
        writer.writerow(header)
        writer.writerows(row.cells() for row in rows)

        artifact = ExportArtifact(
            filename=csv_filename(form.name, exported_at),
            media_type=CSV_MEDIA_TYPE,
            content=buffer.getvalue().encode("utf-8"),
        )
        trace_event("export.csv.done", form_id=form.id, filename=artifact.filename, width=width)
        return artifact

    async def export_form_csv(self, form_id: str, *, now: datetime | None = None) -> ExportArtifact:
        """Load a form's data and export it as CSV.

        Raises:
            NotFoundError: The form does not exist.
            TotalFailure: The form, fields or submissions could not be read.
        """
        form, fields, submissions = await self._load_form_dataset(form_id)
        return await self.export_csv(form, fields, submissions, now=now)

    async def _load_form_dataset(self, form_id: str) -> tuple[Form, list[FormField], list[Submission]]:
        if self._form_dao is None or self._submission_dao is None:
            raise TotalFailure("Export service has no data access configured")
        try:
            form = await self._form_dao.get_form(form_id)
            if form is None:
                raise NotFoundError(f"Form not found: {form_id}")
            fields = await self._form_dao.list_fields(form_id)
            submissions = await self._submission_dao.list_submissions(form_id)
        except SQLAlchemyError as e:
            logger.error("Error loading export data for form %s: %s", form_id, e)
            raise TotalFailure(f"Could not read submissions for form {form_id}") from e
        return form, fields, submissions

    # ------------------------------------------------------------------
    # Archive export
    # ------------------------------------------------------------------

    async def collect_archive_entries(self, submission: Submission) -> tuple[list[ArchiveEntry], list[str]]:
        """Download every resolvable file of a submission.

        Returns:
            (entries, skipped) where skipped lists references that could not
            be resolved or downloaded.
        """
        folder = submission_folder(submission)
        entries: list[ArchiveEntry] = []
        skipped: list[str] = []

        for index, reference in enumerate(submission.uploaded_files, start=1):
            path = try_resolve(reference, bucket=self._bucket)
            if path is None:
                logger.warning("Could not extract file path for ZIP: %s", reference)
                trace_event("export.zip.file.error", reference=reference, error="invalid_path")
                skipped.append(reference)
                continue

            try:
                data = await self._storage.download_object(path)
            except StorageError as e:
                logger.error("Error downloading file for ZIP: %s (path=%s)", e, path)
                trace_event("export.zip.file.error", path=path, error="download_failed")
                skipped.append(reference)
                continue

            entries.append(
                ArchiveEntry(
                    submission_folder=folder,
                    file_name=file_name_from_path(path, default=f"file_{index}"),
                    data=data,
                )
            )
        return entries, skipped

    async def export_archive(self, form: Form, submission: Submission) -> ExportArtifact:
        """Bundle one submission's files into a ZIP archive.

        The archive always contains the submission folder, even when no
        file could be fetched.
        """
        set_trace(new_trace_id())
        trace_event(
            "export.zip.start",
            submission_id=submission.id,
            files=len(submission.uploaded_files),
        )
        entries, skipped = await self.collect_archive_entries(submission)

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr(f"{submission_folder(submission)}/", b"")
            seen: set[str] = set()
            for entry in entries:
                arcname = entry.arcname
                # Two references may share a file name; keep both.
                if arcname in seen:
                    stem, dot, ext = entry.file_name.rpartition(".")
                    counter = 2
                    while arcname in seen:
                        name = f"{stem}_{counter}.{ext}" if dot else f"{entry.file_name}_{counter}"
                        arcname = f"{entry.submission_folder}/{name}"
                        counter += 1
                seen.add(arcname)
                zf.writestr(arcname, entry.data)

        artifact = ExportArtifact(
            filename=archive_filename(form.name, submission),
            media_type=ZIP_MEDIA_TYPE,
            content=buffer.getvalue(),
            skipped=skipped,
        )
        trace_event(
            "export.zip.done",
            submission_id=submission.id,
            added=len(entries),
            skipped=len(skipped),
        )
        return artifact

    async def export_submission_archive(self, submission_id: str) -> ExportArtifact:
        """Load a submission and its form, then build the archive.

        Raises:
            NotFoundError: Submission or form does not exist.
            TotalFailure: The data store could not be read.
        """
        if self._form_dao is None or self._submission_dao is None:
            raise TotalFailure("Export service has no data access configured")
        try:
            submission = await self._submission_dao.get_submission(submission_id)
            if submission is None:
                raise NotFoundError(f"Submission not found: {submission_id}")
            form = await self._form_dao.get_form(submission.form_id)
            if form is None:
                raise NotFoundError(f"Form not found: {submission.form_id}")
        except SQLAlchemyError as e:
            logger.error("Error loading submission %s: %s", submission_id, e)
            raise TotalFailure(f"Could not read submission {submission_id}") from e
        return await self.export_archive(form, submission)
