"""Data Access Objects package."""

from .base import BaseDAO
from .form_dao import FormDAO
from .submission_dao import SubmissionDAO

__all__ = [
    "BaseDAO",
    "FormDAO",
    "SubmissionDAO",
]
