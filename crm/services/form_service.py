"""Form service - form definitions, submissions and the public submit path."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from crm.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from crm.db.access import delete_row, insert_row, paginate, update_row
from crm.db.enums import FormFieldType, FormStatus, SubmissionStatus
from crm.db.models import Form, FormSubmission
from crm.schemas.form import FormCreate, FormField, FormUpdate

logger = logging.getLogger(__name__)

NOT_ACCEPTING_MESSAGE = "This form is not currently accepting submissions"


def create_form(db: Session, org_id: UUID, data: FormCreate, user_id: UUID | None = None) -> Form:
    values = data.model_dump(mode="json")
    values["organization_id"] = org_id
    values["user_id"] = user_id
    return insert_row(db, Form, values)


def get_form(db: Session, form_id: UUID, org_id: UUID) -> Form:
    form = db.query(Form).filter(Form.id == form_id, Form.organization_id == org_id).first()
    if not form:
        raise NotFoundError("Form", form_id)
    return form


def list_forms(
    db: Session,
    org_id: UUID,
    *,
    page: int = 1,
    limit: int = 20,
    status: str | None = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
) -> dict:
    filters: dict = {"organization_id": org_id}
    if status:
        filters["status"] = status
    return paginate(db, Form, filters, page=page, limit=limit, order_by=sort_by, order=sort_dir)


def update_form(db: Session, form_id: UUID, org_id: UUID, data: FormUpdate) -> Form:
    form = get_form(db, form_id, org_id)
    return update_row(db, form, data.model_dump(mode="json", exclude_unset=True))


def delete_form(db: Session, form_id: UUID, org_id: UUID) -> None:
    delete_row(db, get_form(db, form_id, org_id))


def list_submissions(
    db: Session,
    form_id: UUID,
    org_id: UUID,
    *,
    page: int = 1,
    limit: int = 50,
    status: str | None = None,
) -> dict:
    form = get_form(db, form_id, org_id)
    filters: dict = {"form_id": form.id}
    if status:
        filters["status"] = status
    return paginate(db, FormSubmission, filters, page=page, limit=limit)


# =============================================================================
# Public access
# =============================================================================

def get_public_form(db: Session, form_id: UUID) -> Form:
    """
    Look up a form for an anonymous visitor.

    Raises:
        NotFoundError: no such form
        AuthorizationError: form is not public or not active
    """
    form = db.query(Form).filter(Form.id == form_id).first()
    if not form:
        raise NotFoundError("Form", form_id)
    if not form.is_public or form.status != FormStatus.ACTIVE.value:
        raise AuthorizationError(NOT_ACCEPTING_MESSAGE)
    return form


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_submission(fields: list[FormField], data: dict[str, Any]) -> dict[str, Any]:
    """
    Check submitted values against the field definitions.

    Returns only the declared fields; unknown keys are dropped.
    """
    cleaned: dict[str, Any] = {}
    for field in fields:
        value = data.get(field.name)
        if _is_blank(value):
            if field.required:
                raise ValidationError(f"Required field '{field.label}' is missing", field=field.name)
            continue
        if field.type == FormFieldType.EMAIL and "@" not in str(value):
            raise ValidationError(f"Field '{field.label}' must be an email address", field=field.name)
        if field.options and field.type in (FormFieldType.SELECT, FormFieldType.RADIO) and value not in field.options:
            raise ValidationError(f"Field '{field.label}' has an invalid option", field=field.name)
        cleaned[field.name] = value
    return cleaned


def submit_form(db: Session, form_id: UUID, data: dict[str, Any], ip_address: str | None = None) -> FormSubmission:
    form = get_public_form(db, form_id)
    fields = [FormField.model_validate(f) for f in form.fields]
    cleaned = validate_submission(fields, data)

    submission = insert_row(db, FormSubmission, {
        "form_id": form.id,
        "data": cleaned,
        "ip_address": ip_address,
        "status": SubmissionStatus.NEW.value,
    })
    logger.info("Form %s received submission %s", form.id, submission.id)
    return submission
