"""Ephemeral export structures.

These are built per export run and never persisted.
"""

from dataclasses import dataclass, field

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
ZIP_MEDIA_TYPE = "application/zip"


@dataclass
class ExportRow:
    """One CSV row per submission.

    Attributes:
        short_id: First 8 characters of the submission id.
        field_values: Values of the form fields in field order.
        file_count: Number of references on the submission.
        files: (file name, file URL) pairs, padded to the export width.
    """

    short_id: str
    field_values: list[str]
    file_count: int
    files: list[tuple[str, str]] = field(default_factory=list)

    def cells(self) -> list[str]:
        out = [self.short_id, *self.field_values, str(self.file_count)]
        for name, url in self.files:
            out.append(name)
            out.append(url)
        return out


@dataclass
class ArchiveEntry:
    """A file waiting to be written into a submission archive."""

    submission_folder: str
    file_name: str
    data: bytes

    @property
    def arcname(self) -> str:
        return f"{self.submission_folder}/{self.file_name}"


@dataclass
class ExportArtifact:
    """A single downloadable export resource."""

    filename: str
    media_type: str
    content: bytes
    skipped: list[str] = field(default_factory=list)

    @property
    def content_disposition(self) -> str:
        safe_name = self.filename.replace('"', "")
        return f'attachment; filename="{safe_name}"'
