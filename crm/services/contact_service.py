"""Contact service - CRUD, search and status counts for contacts."""

from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from crm.core.exceptions import NotFoundError
from crm.db.access import delete_row, insert_row, paginate, update_row
from crm.db.models import Contact
from crm.schemas.contact import ContactCreate, ContactUpdate


def search_filter(search: str):
    """Case-insensitive match on name, email or phone."""
    term = f"%{search}%"
    return or_(
        Contact.first_name.ilike(term),
        Contact.last_name.ilike(term),
        Contact.email.ilike(term),
        Contact.phone.ilike(term),
    )


# =============================================================================
# CRUD Operations
# =============================================================================

def create_contact(db: Session, org_id: UUID, data: ContactCreate) -> Contact:
    values = data.model_dump(mode="json")
    values["organization_id"] = org_id
    values["custom_fields"] = data.custom_fields or None
    return insert_row(db, Contact, values)


def get_contact(db: Session, contact_id: UUID, org_id: UUID) -> Contact:
    """Get a contact by ID, scoped to org."""
    contact = db.query(Contact).filter(
        Contact.id == contact_id,
        Contact.organization_id == org_id,
    ).first()
    if not contact:
        raise NotFoundError("Contact", contact_id)
    return contact


def list_contacts(
    db: Session,
    org_id: UUID,
    *,
    page: int = 1,
    limit: int = 20,
    search: str | None = None,
    status: str | None = None,
    source: str | None = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
) -> dict:
    """Paginated contacts with optional search and status/source filters."""
    filters: dict = {"organization_id": org_id}
    if status:
        filters["status"] = status
    if source:
        filters["source"] = source

    query = db.query(Contact)
    if search:
        query = query.filter(search_filter(search))

    return paginate(
        db,
        Contact,
        filters,
        page=page,
        limit=limit,
        order_by=sort_by,
        order=sort_dir,
        query=query,
    )


def update_contact(db: Session, contact_id: UUID, org_id: UUID, data: ContactUpdate) -> Contact:
    contact = get_contact(db, contact_id, org_id)
    values = data.model_dump(mode="json", exclude_unset=True, exclude={"custom_fields"})

    if data.custom_fields is not None:
        merged = dict(contact.custom_fields or {})
        for key, value in data.custom_fields.items():
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        values["custom_fields"] = merged or None

    return update_row(db, contact, values)


def delete_contact(db: Session, contact_id: UUID, org_id: UUID) -> None:
    contact = get_contact(db, contact_id, org_id)
    delete_row(db, contact)


# =============================================================================
# Counts
# =============================================================================

def count_contacts(db: Session, org_id: UUID) -> int:
    return db.query(func.count(Contact.id)).filter(
        Contact.organization_id == org_id
    ).scalar() or 0


def count_contacts_by_status(db: Session, org_id: UUID) -> list[dict]:
    rows = db.query(
        Contact.status,
        func.count(Contact.id).label("count"),
    ).filter(
        Contact.organization_id == org_id
    ).group_by(Contact.status).order_by(Contact.status).all()
    return [{"status": r.status, "count": r.count} for r in rows]
