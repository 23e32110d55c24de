"""Forms router - authenticated form management plus the public submit surface.

``public_router`` lives under ``/forms/public`` which the auth middleware
leaves open; it is rate limited per client address.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from crm.core.config import settings
from crm.core.deps import get_db, get_optional_user_id, get_org_scope
from crm.core.rate_limit import limiter
from crm.schemas.common import MessageResponse
from crm.schemas.form import (
    FormCreate,
    FormListResponse,
    FormRead,
    FormSubmissionCreate,
    FormSubmissionListResponse,
    FormSubmitResponse,
    FormUpdate,
    PublicFormRead,
)
from crm.services import form_service
from crm.utils.pagination import DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(prefix="/forms", tags=["forms"])
public_router = APIRouter(prefix="/forms/public", tags=["forms-public"])


# =============================================================================
# Public
# =============================================================================

@public_router.get("/{form_id}", response_model=PublicFormRead)
def get_public_form(form_id: UUID, db: Session = Depends(get_db)):
    """Definition of a published form, for rendering by anonymous visitors."""
    return form_service.get_public_form(db, form_id)


@public_router.post("/{form_id}/submit", response_model=FormSubmitResponse, status_code=201)
@limiter.limit(f"{settings.RATE_LIMIT_PUBLIC_FORMS}/minute")
def submit_public_form(
    request: Request,
    form_id: UUID,
    data: FormSubmissionCreate,
    db: Session = Depends(get_db),
):
    """
    Store a submission.

    404 for an unknown form, 403 when the form is not public or not active,
    400 when a required field is missing.
    """
    ip_address = request.client.host if request.client else None
    submission = form_service.submit_form(db, form_id, data.data, ip_address)
    message = submission.form.settings.get("success_message") or "Form submitted successfully"
    db.commit()
    return {"message": message, "submission_id": submission.id}


# =============================================================================
# Authenticated
# =============================================================================

@router.get("", response_model=FormListResponse)
def list_forms(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    status: str | None = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return form_service.list_forms(
        db, org_id, page=page, limit=limit, status=status, sort_by=sort_by, sort_dir=sort_dir
    )


@router.post("", response_model=FormRead, status_code=201)
def create_form(
    data: FormCreate,
    org_id: UUID = Depends(get_org_scope),
    user_id: UUID | None = Depends(get_optional_user_id),
    db: Session = Depends(get_db),
):
    form = form_service.create_form(db, org_id, data, user_id)
    db.commit()
    return form


@router.get("/{form_id}", response_model=FormRead)
def get_form(
    form_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return form_service.get_form(db, form_id, org_id)


@router.put("/{form_id}", response_model=FormRead)
def update_form(
    form_id: UUID,
    data: FormUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    form = form_service.update_form(db, form_id, org_id, data)
    db.commit()
    return form


@router.delete("/{form_id}", response_model=MessageResponse)
def delete_form(
    form_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    form_service.delete_form(db, form_id, org_id)
    db.commit()
    return {"message": "Form deleted successfully"}


@router.get("/{form_id}/submissions", response_model=FormSubmissionListResponse)
def list_submissions(
    form_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_LIMIT),
    status: str | None = None,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return form_service.list_submissions(db, form_id, org_id, page=page, limit=limit, status=status)
