"""SQLAlchemy ORM models.

These models map the existing form tables. DAOs convert them to Pydantic
domain models before returning to services - SQLAlchemy objects should
never leak outside the DAO layer.
"""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from formvault.database import Base
from formvault.enums import FieldType


class FormModel(Base):
    """Form ORM model."""

    __tablename__ = "forms"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    active = Column(Boolean, nullable=False, default=True)
    max_file_count = Column(Integer, nullable=False, default=5)
    max_file_size = Column(Integer, nullable=False, default=10)
    allowed_file_types = Column(JSON, nullable=False, default=list)
    guidelines = Column(Text, nullable=False, default="")
    bucket_name = Column(String, nullable=False, default="forms")
    user_id = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    fields = relationship(
        "FormFieldModel",
        back_populates="form",
        cascade="all, delete-orphan",
    )


class FormFieldModel(Base):
    """Form field ORM model."""

    __tablename__ = "form_fields"

    id = Column(String, primary_key=True)
    form_id = Column(String, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    field_name = Column(String, nullable=False)
    field_key = Column(String, nullable=False)
    field_type = Column(String, nullable=False, default=FieldType.TEXT.value)
    field_options = Column(JSON, nullable=False, default=list)
    required = Column(Boolean, nullable=False, default=False)
    order_index = Column(Integer, nullable=False, default=0)

    form = relationship("FormModel", back_populates="fields")


class SubmissionModel(Base):
    """Form submission ORM model.

    uploaded_files holds storage references in upload order.
    """

    __tablename__ = "form_submissions"

    id = Column(String, primary_key=True)
    form_id = Column(String, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    submitted_data = Column(JSON, nullable=False, default=dict)
    uploaded_files = Column(JSON, nullable=False, default=list)
    user_email = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
