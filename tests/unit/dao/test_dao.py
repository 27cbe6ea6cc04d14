"""Unit tests for the form and submission DAO layer.

Tests verify:
- DAOs return Pydantic models, not SQLAlchemy objects
- Field order and submission order used by exports
"""

import uuid
from datetime import datetime, timedelta

import pytest_asyncio

from formvault.dao.form_dao import FormDAO
from formvault.dao.submission_dao import SubmissionDAO
from formvault.database import Database
from formvault.enums import FieldType
from formvault.models.domain import Form, FormField, Submission
from tests.helpers import FORM_ID, make_field, make_form


@pytest_asyncio.fixture
async def form_dao(test_db: Database) -> FormDAO:
    return FormDAO(test_db)


@pytest_asyncio.fixture
async def submission_dao(test_db: Database) -> SubmissionDAO:
    return SubmissionDAO(test_db)


class TestFormDAO:
    async def test_get_form_returns_pydantic(self, form_dao: FormDAO):
        await form_dao.create_form(make_form(allowed_file_types=["image/*"]))

        form = await form_dao.get_form(FORM_ID)

        assert isinstance(form, Form)
        assert form.name == "Site Survey"
        assert form.allowed_file_types == ["image/*"]
        assert form.max_file_count == 5

    async def test_get_missing_form(self, form_dao: FormDAO):
        assert await form_dao.get_form(str(uuid.uuid4())) is None

    async def test_fields_in_display_order(self, form_dao: FormDAO):
        select_field = make_field("size", "Size", 0).model_copy(
            update={"field_type": FieldType.SELECT, "field_options": ["S", "M"]}
        )
        await form_dao.create_form(
            make_form(),
            [make_field("notes", "Notes", 2), select_field, make_field("city", "City", 1)],
        )

        fields = await form_dao.list_fields(FORM_ID)

        assert all(isinstance(f, FormField) for f in fields)
        assert [f.field_key for f in fields] == ["size", "city", "notes"]
        assert fields[0].field_type == FieldType.SELECT
        assert fields[0].field_options == ["S", "M"]


class TestSubmissionDAO:
    async def test_create_and_get(self, form_dao: FormDAO, submission_dao: SubmissionDAO):
        await form_dao.create_form(make_form())
        sub_id = str(uuid.uuid4())

        created = await submission_dao.create_submission(
            submission_id=sub_id,
            form_id=FORM_ID,
            submitted_data={"city": "Lisbon"},
            uploaded_files=["a/1.png", "a/2.png"],
            user_email="ana@example.com",
        )
        fetched = await submission_dao.get_submission(sub_id)

        assert isinstance(created, Submission)
        assert isinstance(fetched, Submission)
        assert fetched.uploaded_files == ["a/1.png", "a/2.png"]
        assert fetched.submitted_data == {"city": "Lisbon"}
        assert fetched.short_id == sub_id[:8]

    async def test_list_newest_first(self, form_dao: FormDAO, submission_dao: SubmissionDAO):
        await form_dao.create_form(make_form())
        base = datetime(2024, 1, 1)
        for i in range(3):
            await submission_dao.create_submission(
                submission_id=f"sub-{i}",
                form_id=FORM_ID,
                submitted_data={},
                uploaded_files=[],
                user_email="a@b.c",
                created_at=base + timedelta(days=i),
            )

        subs = await submission_dao.list_submissions(FORM_ID)

        assert [s.id for s in subs] == ["sub-2", "sub-1", "sub-0"]

    async def test_get_missing_submission(self, submission_dao: SubmissionDAO):
        assert await submission_dao.get_submission("nope") is None
