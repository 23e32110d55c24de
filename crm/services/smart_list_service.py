"""Smart list service - saved contact filters."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from crm.core.exceptions import NotFoundError
from crm.db.access import delete_row, insert_row, paginate, update_row
from crm.db.models import Contact, ContactTag, SmartList, Tag
from crm.schemas.contact import SmartListCreate, SmartListCriteria, SmartListUpdate
from crm.services.contact_service import search_filter


def create_smart_list(db: Session, org_id: UUID, data: SmartListCreate) -> SmartList:
    return insert_row(db, SmartList, {
        "organization_id": org_id,
        "name": data.name,
        "description": data.description,
        "filter_criteria": data.filter_criteria.model_dump(mode="json"),
    })


def get_smart_list(db: Session, smart_list_id: UUID, org_id: UUID) -> SmartList:
    smart_list = db.query(SmartList).filter(
        SmartList.id == smart_list_id,
        SmartList.organization_id == org_id,
    ).first()
    if not smart_list:
        raise NotFoundError("Smart list", smart_list_id)
    return smart_list


def list_smart_lists(db: Session, org_id: UUID) -> list[SmartList]:
    return db.query(SmartList).filter(
        SmartList.organization_id == org_id
    ).order_by(SmartList.name).all()


def update_smart_list(db: Session, smart_list_id: UUID, org_id: UUID, data: SmartListUpdate) -> SmartList:
    smart_list = get_smart_list(db, smart_list_id, org_id)
    values = data.model_dump(exclude_unset=True, exclude={"filter_criteria"})
    if data.filter_criteria is not None:
        values["filter_criteria"] = data.filter_criteria.model_dump(mode="json")
    return update_row(db, smart_list, values)


def delete_smart_list(db: Session, smart_list_id: UUID, org_id: UUID) -> None:
    delete_row(db, get_smart_list(db, smart_list_id, org_id))


def get_smart_list_contacts(
    db: Session,
    smart_list_id: UUID,
    org_id: UUID,
    *,
    page: int = 1,
    limit: int = 50,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
) -> dict:
    """Contacts matching the list's stored criteria, paginated."""
    smart_list = get_smart_list(db, smart_list_id, org_id)
    criteria = SmartListCriteria.model_validate(smart_list.filter_criteria or {})

    filters: dict = {"organization_id": org_id}
    if criteria.status:
        filters["status"] = criteria.status.value
    if criteria.source:
        filters["source"] = criteria.source

    query = db.query(Contact)
    if criteria.tags:
        tagged = select(ContactTag.contact_id).join(Tag, ContactTag.tag_id == Tag.id).where(
            Tag.id.in_(criteria.tags),
            Tag.organization_id == org_id,
        )
        query = query.filter(Contact.id.in_(tagged))
    if criteria.search:
        query = query.filter(search_filter(criteria.search))

    return paginate(
        db, Contact, filters,
        page=page, limit=limit, order_by=sort_by, order=sort_dir, query=query,
    )
