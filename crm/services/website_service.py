"""Website service - websites and their builder pages.

Pages are always reached through their website, so the org check on the
website covers them too. New pages start unpublished.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from crm.core.exceptions import NotFoundError, ValidationError
from crm.db.access import delete_row, insert_row, paginate, update_row
from crm.db.models import Page, Website
from crm.schemas.website import PageCreate, PageUpdate, WebsiteCreate, WebsiteUpdate


def _slug_taken(db: Session, website_id: UUID, slug: str, exclude_id: UUID | None = None) -> bool:
    query = db.query(Page.id).filter(
        Page.website_id == website_id,
        Page.slug == slug,
    )
    if exclude_id:
        query = query.filter(Page.id != exclude_id)
    return query.first() is not None


# =============================================================================
# Websites
# =============================================================================

def create_website(db: Session, org_id: UUID, data: WebsiteCreate) -> Website:
    values = data.model_dump()
    values["organization_id"] = org_id
    return insert_row(db, Website, values)


def get_website(db: Session, website_id: UUID, org_id: UUID) -> Website:
    website = db.query(Website).filter(
        Website.id == website_id,
        Website.organization_id == org_id,
    ).first()
    if not website:
        raise NotFoundError("Website", website_id)
    return website


def list_websites(db: Session, org_id: UUID, *, page: int = 1, limit: int = 20) -> dict:
    return paginate(db, Website, {"organization_id": org_id}, page=page, limit=limit, order_by="name", order="ASC")


def update_website(db: Session, website_id: UUID, org_id: UUID, data: WebsiteUpdate) -> Website:
    website = get_website(db, website_id, org_id)
    return update_row(db, website, data.model_dump(exclude_unset=True))


def delete_website(db: Session, website_id: UUID, org_id: UUID) -> None:
    """Delete a website and all of its pages."""
    delete_row(db, get_website(db, website_id, org_id))


# =============================================================================
# Pages
# =============================================================================

def create_page(db: Session, website_id: UUID, org_id: UUID, data: PageCreate) -> Page:
    website = get_website(db, website_id, org_id)
    if _slug_taken(db, website.id, data.slug):
        raise ValidationError("Page slug already exists", field="slug")

    values = data.model_dump()
    values["website_id"] = website.id
    values["is_published"] = False
    return insert_row(db, Page, values)


def get_page(db: Session, website_id: UUID, page_id: UUID, org_id: UUID) -> Page:
    website = get_website(db, website_id, org_id)
    page = db.query(Page).filter(
        Page.id == page_id,
        Page.website_id == website.id,
    ).first()
    if not page:
        raise NotFoundError("Page", page_id)
    return page


def list_pages(db: Session, website_id: UUID, org_id: UUID) -> list[Page]:
    website = get_website(db, website_id, org_id)
    return db.query(Page).filter(Page.website_id == website.id).order_by(Page.title).all()


def update_page(db: Session, website_id: UUID, page_id: UUID, org_id: UUID, data: PageUpdate) -> Page:
    page = get_page(db, website_id, page_id, org_id)
    if data.slug is not None and data.slug != page.slug and _slug_taken(db, page.website_id, data.slug, page.id):
        raise ValidationError("Page slug already exists", field="slug")
    return update_row(db, page, data.model_dump(exclude_unset=True, exclude_none=True))


def delete_page(db: Session, website_id: UUID, page_id: UUID, org_id: UUID) -> None:
    delete_row(db, get_page(db, website_id, page_id, org_id))


def publish_page(db: Session, website_id: UUID, page_id: UUID, org_id: UUID) -> Page:
    page = get_page(db, website_id, page_id, org_id)
    return update_row(db, page, {"is_published": True})


def unpublish_page(db: Session, website_id: UUID, page_id: UUID, org_id: UUID) -> Page:
    page = get_page(db, website_id, page_id, org_id)
    return update_row(db, page, {"is_published": False})
