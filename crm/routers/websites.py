"""Websites router - websites and their builder pages."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.core.deps import get_db, get_org_scope
from crm.schemas.common import MessageResponse
from crm.schemas.website import (
    PageCreate,
    PageRead,
    PageUpdate,
    WebsiteCreate,
    WebsiteListResponse,
    WebsiteRead,
    WebsiteUpdate,
)
from crm.services import website_service
from crm.utils.pagination import DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(prefix="/websites", tags=["websites"])


# =============================================================================
# Websites
# =============================================================================

@router.get("", response_model=WebsiteListResponse)
def list_websites(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return website_service.list_websites(db, org_id, page=page, limit=limit)


@router.post("", response_model=WebsiteRead, status_code=201)
def create_website(
    data: WebsiteCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    website = website_service.create_website(db, org_id, data)
    db.commit()
    return website


@router.get("/{website_id}", response_model=WebsiteRead)
def get_website(
    website_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return website_service.get_website(db, website_id, org_id)


@router.put("/{website_id}", response_model=WebsiteRead)
def update_website(
    website_id: UUID,
    data: WebsiteUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    website = website_service.update_website(db, website_id, org_id, data)
    db.commit()
    return website


@router.delete("/{website_id}", response_model=MessageResponse)
def delete_website(
    website_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    website_service.delete_website(db, website_id, org_id)
    db.commit()
    return {"message": "Website deleted successfully"}


# =============================================================================
# Pages
# =============================================================================

@router.get("/{website_id}/pages", response_model=list[PageRead])
def list_pages(
    website_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Pages of the website, by title."""
    return website_service.list_pages(db, website_id, org_id)


@router.post("/{website_id}/pages", response_model=PageRead, status_code=201)
def create_page(
    website_id: UUID,
    data: PageCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    page = website_service.create_page(db, website_id, org_id, data)
    db.commit()
    return page


@router.get("/{website_id}/pages/{page_id}", response_model=PageRead)
def get_page(
    website_id: UUID,
    page_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return website_service.get_page(db, website_id, page_id, org_id)


@router.put("/{website_id}/pages/{page_id}", response_model=PageRead)
def update_page(
    website_id: UUID,
    page_id: UUID,
    data: PageUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    page = website_service.update_page(db, website_id, page_id, org_id, data)
    db.commit()
    return page


@router.delete("/{website_id}/pages/{page_id}", response_model=MessageResponse)
def delete_page(
    website_id: UUID,
    page_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    website_service.delete_page(db, website_id, page_id, org_id)
    db.commit()
    return {"message": "Page deleted successfully"}


@router.post("/{website_id}/pages/{page_id}/publish", response_model=PageRead)
def publish_page(
    website_id: UUID,
    page_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    page = website_service.publish_page(db, website_id, page_id, org_id)
    db.commit()
    return page


@router.post("/{website_id}/pages/{page_id}/unpublish", response_model=PageRead)
def unpublish_page(
    website_id: UUID,
    page_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    page = website_service.unpublish_page(db, website_id, page_id, org_id)
    db.commit()
    return page
