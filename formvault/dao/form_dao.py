"""Form and form field data access operations."""

from sqlalchemy import select

from formvault.dao.base import BaseDAO
from formvault.enums import FieldType
from formvault.models.domain import Form, FormField
from formvault.models.orm import FormFieldModel, FormModel


def _to_form(model: FormModel) -> Form:
    return Form(
        id=model.id,
        name=model.name,
        description=model.description or "",
        active=bool(model.active),
        max_file_count=model.max_file_count,
        max_file_size=model.max_file_size,
        allowed_file_types=list(model.allowed_file_types or []),
        guidelines=model.guidelines or "",
        bucket_name=model.bucket_name,
        user_id=model.user_id,
        created_at=model.created_at,
    )


def _to_field(model: FormFieldModel) -> FormField:
    return FormField(
        id=model.id,
        form_id=model.form_id,
        field_name=model.field_name,
        field_key=model.field_key,
        field_type=FieldType(model.field_type),
        field_options=list(model.field_options or []),
        required=bool(model.required),
        order_index=model.order_index,
    )


class FormDAO(BaseDAO[Form]):
    """Data access object for forms and their fields.

    All methods return Pydantic models, never SQLAlchemy objects.
    """

    async def get_form(self, form_id: str) -> Form | None:
        """Get a form by ID.

        Args:
            form_id: Form identifier.

        Returns:
            Form domain model if found, None otherwise.
        """
        async with self._db.session() as session:
            result = await session.execute(select(FormModel).where(FormModel.id == form_id))
            model = result.scalar_one_or_none()
            return _to_form(model) if model is not None else None

    async def list_fields(self, form_id: str) -> list[FormField]:
        """List a form's fields in display order.

        Args:
            form_id: Form identifier.

        Returns:
            FormField models ordered by order_index.
        """
        async with self._db.session() as session:
            result = await session.execute(
                select(FormFieldModel)
                .where(FormFieldModel.form_id == form_id)
                .order_by(FormFieldModel.order_index)
            )
            return [_to_field(m) for m in result.scalars().all()]

    async def create_form(self, form: Form, fields: list[FormField] | None = None) -> Form:
        """Insert a form and its fields.

        Form editing lives in the admin front end; this is used to seed
        local databases and tests.
        """
        async with self._db.session() as session:
            session.add(
                FormModel(
                    id=form.id,
                    name=form.name,
                    description=form.description,
                    active=form.active,
                    max_file_count=form.max_file_count,
                    max_file_size=form.max_file_size,
                    allowed_file_types=list(form.allowed_file_types),
                    guidelines=form.guidelines,
                    bucket_name=form.bucket_name,
                    user_id=form.user_id,
                    created_at=form.created_at,
                )
            )
            for f in fields or []:
                session.add(
                    FormFieldModel(
                        id=f.id,
                        form_id=form.id,
                        field_name=f.field_name,
                        field_key=f.field_key,
                        field_type=f.field_type.value,
                        field_options=list(f.field_options),
                        required=f.required,
                        order_index=f.order_index,
                    )
                )
        return form
