"""Contacts router - contacts, their tags, tags and smart lists."""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.core.deps import get_db, get_org_scope
from crm.schemas.common import MessageResponse
from crm.schemas.contact import (
    ContactCreate,
    ContactListResponse,
    ContactRead,
    ContactSortField,
    ContactStatusCount,
    ContactTagAdd,
    ContactUpdate,
    SmartListCreate,
    SmartListRead,
    SmartListUpdate,
    TagCreate,
    TagRead,
    TagUpdate,
)
from crm.services import contact_service, smart_list_service, tag_service
from crm.utils.pagination import DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter()

SortDirection = Literal["asc", "desc"]


# =============================================================================
# Contacts
# =============================================================================

@router.get("/contacts", response_model=ContactListResponse)
def list_contacts(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    search: str | None = Query(None, max_length=255),
    status: str | None = None,
    source: str | None = None,
    sort_by: ContactSortField = "created_at",
    sort_dir: SortDirection = "desc",
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """List contacts with optional search across name, email and phone."""
    return contact_service.list_contacts(
        db,
        org_id,
        page=page,
        limit=limit,
        search=search,
        status=status,
        source=source,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )


@router.get("/contacts/status-counts", response_model=list[ContactStatusCount])
def contact_status_counts(
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return contact_service.count_contacts_by_status(db, org_id)


@router.post("/contacts", response_model=ContactRead, status_code=201)
def create_contact(
    data: ContactCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    contact = contact_service.create_contact(db, org_id, data)
    db.commit()
    return contact


@router.get("/contacts/{contact_id}", response_model=ContactRead)
def get_contact(
    contact_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return contact_service.get_contact(db, contact_id, org_id)


@router.put("/contacts/{contact_id}", response_model=ContactRead)
def update_contact(
    contact_id: UUID,
    data: ContactUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Partial update; custom_fields are merged into the stored object."""
    contact = contact_service.update_contact(db, contact_id, org_id, data)
    db.commit()
    return contact


@router.delete("/contacts/{contact_id}", response_model=MessageResponse)
def delete_contact(
    contact_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    contact_service.delete_contact(db, contact_id, org_id)
    db.commit()
    return {"message": "Contact deleted successfully"}


# =============================================================================
# Contact tags
# =============================================================================

@router.get("/contacts/{contact_id}/tags", response_model=list[TagRead])
def list_contact_tags(
    contact_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return tag_service.list_contact_tags(db, contact_id, org_id)


@router.post("/contacts/{contact_id}/tags", response_model=TagRead, status_code=201)
def add_contact_tag(
    contact_id: UUID,
    data: ContactTagAdd,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Attach a tag. Fails if the contact already carries it."""
    tag = tag_service.add_tag_to_contact(db, contact_id, data.tag_id, org_id)
    db.commit()
    return tag


@router.delete("/contacts/{contact_id}/tags/{tag_id}", response_model=MessageResponse)
def remove_contact_tag(
    contact_id: UUID,
    tag_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    tag_service.remove_tag_from_contact(db, contact_id, tag_id, org_id)
    db.commit()
    return {"message": "Tag removed from contact"}


# =============================================================================
# Tags
# =============================================================================

@router.get("/tags", response_model=list[TagRead])
def list_tags(
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return tag_service.list_tags(db, org_id)


@router.post("/tags", response_model=TagRead, status_code=201)
def create_tag(
    data: TagCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    tag = tag_service.create_tag(db, org_id, data)
    db.commit()
    return tag


@router.get("/tags/{tag_id}", response_model=TagRead)
def get_tag(
    tag_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return tag_service.get_tag(db, tag_id, org_id)


@router.put("/tags/{tag_id}", response_model=TagRead)
def update_tag(
    tag_id: UUID,
    data: TagUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    tag = tag_service.update_tag(db, tag_id, org_id, data)
    db.commit()
    return tag


@router.delete("/tags/{tag_id}", response_model=MessageResponse)
def delete_tag(
    tag_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    tag_service.delete_tag(db, tag_id, org_id)
    db.commit()
    return {"message": "Tag deleted successfully"}


# =============================================================================
# Smart lists
# =============================================================================

@router.get("/smart-lists", response_model=list[SmartListRead])
def list_smart_lists(
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return smart_list_service.list_smart_lists(db, org_id)


@router.post("/smart-lists", response_model=SmartListRead, status_code=201)
def create_smart_list(
    data: SmartListCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    smart_list = smart_list_service.create_smart_list(db, org_id, data)
    db.commit()
    return smart_list


@router.get("/smart-lists/{smart_list_id}", response_model=SmartListRead)
def get_smart_list(
    smart_list_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return smart_list_service.get_smart_list(db, smart_list_id, org_id)


@router.put("/smart-lists/{smart_list_id}", response_model=SmartListRead)
def update_smart_list(
    smart_list_id: UUID,
    data: SmartListUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    smart_list = smart_list_service.update_smart_list(db, smart_list_id, org_id, data)
    db.commit()
    return smart_list


@router.delete("/smart-lists/{smart_list_id}", response_model=MessageResponse)
def delete_smart_list(
    smart_list_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    smart_list_service.delete_smart_list(db, smart_list_id, org_id)
    db.commit()
    return {"message": "Smart list deleted successfully"}


@router.get("/smart-lists/{smart_list_id}/contacts", response_model=ContactListResponse)
def smart_list_contacts(
    smart_list_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_LIMIT),
    sort_by: ContactSortField = "created_at",
    sort_dir: SortDirection = "desc",
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Contacts currently matching the list's filter criteria."""
    return smart_list_service.get_smart_list_contacts(
        db, smart_list_id, org_id, page=page, limit=limit, sort_by=sort_by, sort_dir=sort_dir
    )
