"""Tag service - organization tags and contact tagging."""

from uuid import UUID

from sqlalchemy.orm import Session

from crm.core.exceptions import NotFoundError, ValidationError
from crm.db.access import delete_row, insert_row, update_row
from crm.db.enums import DEFAULT_TAG_COLOR
from crm.db.models import ContactTag, Tag
from crm.schemas.contact import TagCreate, TagUpdate
from crm.services import contact_service


def _name_taken(db: Session, org_id: UUID, name: str, exclude_id: UUID | None = None) -> bool:
    query = db.query(Tag.id).filter(Tag.organization_id == org_id, Tag.name == name)
    if exclude_id:
        query = query.filter(Tag.id != exclude_id)
    return query.first() is not None


def create_tag(db: Session, org_id: UUID, data: TagCreate) -> Tag:
    if _name_taken(db, org_id, data.name):
        raise ValidationError("Tag with this name already exists", field="name")
    return insert_row(db, Tag, {
        "organization_id": org_id,
        "name": data.name,
        "color": data.color or DEFAULT_TAG_COLOR,
    })


def get_tag(db: Session, tag_id: UUID, org_id: UUID) -> Tag:
    tag = db.query(Tag).filter(Tag.id == tag_id, Tag.organization_id == org_id).first()
    if not tag:
        raise NotFoundError("Tag", tag_id)
    return tag


def list_tags(db: Session, org_id: UUID) -> list[Tag]:
    return db.query(Tag).filter(Tag.organization_id == org_id).order_by(Tag.name).all()


def update_tag(db: Session, tag_id: UUID, org_id: UUID, data: TagUpdate) -> Tag:
    tag = get_tag(db, tag_id, org_id)
    if data.name is not None and data.name != tag.name and _name_taken(db, org_id, data.name, tag.id):
        raise ValidationError("Tag with this name already exists", field="name")
    return update_row(db, tag, data.model_dump(exclude_unset=True, exclude_none=True))


def delete_tag(db: Session, tag_id: UUID, org_id: UUID) -> None:
    delete_row(db, get_tag(db, tag_id, org_id))


# =============================================================================
# Contact Tagging
# =============================================================================

def add_tag_to_contact(db: Session, contact_id: UUID, tag_id: UUID, org_id: UUID) -> Tag:
    """Attach a tag to a contact. Both must belong to the org."""
    contact = contact_service.get_contact(db, contact_id, org_id)
    tag = get_tag(db, tag_id, org_id)

    existing = db.query(ContactTag).filter(
        ContactTag.contact_id == contact.id,
        ContactTag.tag_id == tag.id,
    ).first()
    if existing:
        raise ValidationError("Contact already has this tag")

    insert_row(db, ContactTag, {"contact_id": contact.id, "tag_id": tag.id})
    return tag


def remove_tag_from_contact(db: Session, contact_id: UUID, tag_id: UUID, org_id: UUID) -> None:
    contact = contact_service.get_contact(db, contact_id, org_id)
    tag = get_tag(db, tag_id, org_id)
    link = db.query(ContactTag).filter(
        ContactTag.contact_id == contact.id,
        ContactTag.tag_id == tag.id,
    ).first()
    if not link:
        raise NotFoundError("Contact tag", tag_id, message="Contact does not have this tag")
    delete_row(db, link)


def list_contact_tags(db: Session, contact_id: UUID, org_id: UUID) -> list[Tag]:
    contact = contact_service.get_contact(db, contact_id, org_id)
    return db.query(Tag).join(ContactTag, ContactTag.tag_id == Tag.id).filter(
        ContactTag.contact_id == contact.id,
        Tag.organization_id == org_id,
    ).order_by(Tag.name).all()
