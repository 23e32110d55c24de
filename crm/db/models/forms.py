"""Form builder models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm.db.base import Base
from crm.db.enums import FormStatus, SubmissionStatus
from crm.db.types import utcnow


class Form(Base):
    """
    Lead capture form.

    ``fields`` is a list of field definitions and ``settings`` a free-form
    object; both are validated by ``crm.schemas.form`` before storage.
    """

    __tablename__ = "forms"
    __table_args__ = (
        Index("idx_forms_org", "organization_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    organization_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    fields: Mapped[list[dict[str, Any]]] = mapped_column(default=list, nullable=False)
    settings: Mapped[dict[str, Any]] = mapped_column(default=dict, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=FormStatus.ACTIVE.value, nullable=False)
    form_type: Mapped[str] = mapped_column(String(50), default="contact", nullable=False)
    is_public: Mapped[bool] = mapped_column(default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow, nullable=False)

    submissions: Mapped[list["FormSubmission"]] = relationship(
        back_populates="form", cascade="all, delete-orphan"
    )


class FormSubmission(Base):
    """One submitted set of answers."""

    __tablename__ = "form_submissions"
    __table_args__ = (
        Index("idx_form_submissions_form", "form_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    form_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("forms.id", ondelete="CASCADE"), nullable=False
    )
    data: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64))
    status: Mapped[str] = mapped_column(
        String(20), default=SubmissionStatus.NEW.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    form: Mapped["Form"] = relationship(back_populates="submissions")
