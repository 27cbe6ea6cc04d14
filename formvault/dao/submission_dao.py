"""Submission data access operations."""

from datetime import datetime
from typing import Any

from sqlalchemy import select

from formvault.dao.base import BaseDAO
from formvault.models.domain import Submission
from formvault.models.orm import SubmissionModel


def _to_submission(model: SubmissionModel) -> Submission:
    return Submission(
        id=model.id,
        form_id=model.form_id,
        submitted_data=dict(model.submitted_data or {}),
        uploaded_files=list(model.uploaded_files or []),
        user_email=model.user_email,
        created_at=model.created_at,
    )


class SubmissionDAO(BaseDAO[Submission]):
    """Data access object for form submissions.

    All methods return Pydantic Submission models, never SQLAlchemy objects.
    """

    async def create_submission(
        self,
        submission_id: str,
        form_id: str,
        submitted_data: dict[str, Any],
        uploaded_files: list[str],
        user_email: str,
        created_at: datetime | None = None,
    ) -> Submission:
        """Create a new submission.

        Args:
            submission_id: Unique submission identifier.
            form_id: Parent form identifier.
            submitted_data: Field key -> value mapping.
            uploaded_files: Storage references in upload order.
            user_email: Respondent email.
            created_at: Optional creation time (defaults to now).

        Returns:
            Created Submission domain model.
        """
        async with self._db.session() as session:
            model = SubmissionModel(
                id=submission_id,
                form_id=form_id,
                submitted_data=dict(submitted_data),
                uploaded_files=list(uploaded_files),
                user_email=user_email,
                created_at=created_at or datetime.utcnow(),
            )
            session.add(model)
            await session.flush()
            return _to_submission(model)

    async def get_submission(self, submission_id: str) -> Submission | None:
        """Get a submission by ID."""
        async with self._db.session() as session:
            result = await session.execute(
                select(SubmissionModel).where(SubmissionModel.id == submission_id)
            )
            model = result.scalar_one_or_none()
            return _to_submission(model) if model is not None else None

    async def list_submissions(self, form_id: str) -> list[Submission]:
        """List a form's submissions, newest first.

        Args:
            form_id: Form identifier.

        Returns:
            Submission models ordered by created_at descending.
        """
        async with self._db.session() as session:
            result = await session.execute(
                select(SubmissionModel)
                .where(SubmissionModel.form_id == form_id)
                .order_by(SubmissionModel.created_at.desc())
            )
            return [_to_submission(m) for m in result.scalars().all()]
