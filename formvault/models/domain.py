"""Pydantic domain models.

These models are returned by DAOs and used throughout the service layer.
SQLAlchemy ORM objects should never be exposed outside the DAO layer -
always convert to these models.
"""

from datetime import datetime
from typing import Any

from pydantic import Field

from formvault.enums import FieldType
from formvault.models.base import JsonModel


class Form(JsonModel):
    """Form domain model.

    Upload limits are enforced when respondents submit files.
    `max_file_size` is expressed in megabytes.
    """

    id: str
    name: str
    description: str = ""
    active: bool = True
    max_file_count: int = 5
    max_file_size: int = 10
    allowed_file_types: list[str] = Field(default_factory=list)
    guidelines: str = ""
    bucket_name: str = "forms"
    user_id: str | None = None
    created_at: datetime


class FormField(JsonModel):
    """A single input field on a form."""

    id: str
    form_id: str
    field_name: str
    field_key: str
    field_type: FieldType = FieldType.TEXT
    field_options: list[str] = Field(default_factory=list)
    required: bool = False
    order_index: int = 0


class Submission(JsonModel):
    """Submission domain model.

    `uploaded_files` keeps the original upload order; each entry is a
    stored-object reference (canonical path or historical storage URL).
    """

    id: str
    form_id: str
    submitted_data: dict[str, Any] = Field(default_factory=dict)
    uploaded_files: list[str] = Field(default_factory=list)
    user_email: str
    created_at: datetime

    @property
    def short_id(self) -> str:
        return self.id[:8]


class SignedUrl(JsonModel):
    """Access URL handed to API clients."""

    path: str
    url: str
    expires_in_seconds: int
