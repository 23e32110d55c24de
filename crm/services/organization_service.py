"""Organization and user administration."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from crm.core.exceptions import NotFoundError, ValidationError
from crm.db.access import delete_row, insert_row, paginate, update_row
from crm.db.models import Organization, User
from crm.schemas.organization import OrganizationCreate, OrganizationUpdate, UserCreate, UserUpdate

logger = logging.getLogger(__name__)


# =============================================================================
# Organizations
# =============================================================================

def create_organization(db: Session, data: OrganizationCreate) -> Organization:
    org = insert_row(db, Organization, data.model_dump())
    logger.info("Created organization %s", org.id)
    return org


def get_organization(db: Session, org_id: UUID) -> Organization:
    org = db.query(Organization).filter(Organization.id == org_id).first()
    if not org:
        raise NotFoundError("Organization", org_id)
    return org


def list_organizations(db: Session, *, page: int = 1, limit: int = 20) -> dict:
    return paginate(db, Organization, {}, page=page, limit=limit, order_by="name", order="ASC")


def update_organization(db: Session, org_id: UUID, data: OrganizationUpdate) -> Organization:
    org = get_organization(db, org_id)
    return update_row(db, org, data.model_dump(exclude_unset=True))


def delete_organization(db: Session, org_id: UUID) -> None:
    """Delete a tenant; every org-scoped row goes with it via ON DELETE CASCADE."""
    org = get_organization(db, org_id)
    delete_row(db, org)
    logger.info("Deleted organization %s", org_id)


# =============================================================================
# Users
# =============================================================================

def _email_taken(db: Session, email: str, exclude_id: UUID | None = None) -> bool:
    query = db.query(User.id).filter(User.email == email)
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def create_user(db: Session, data: UserCreate) -> User:
    """Create a user in an existing org. Email is unique across all orgs."""
    get_organization(db, data.organization_id)
    if _email_taken(db, data.email):
        raise ValidationError("User with this email already exists", field="email")

    values = data.model_dump()
    values["role"] = data.role.value
    return insert_row(db, User, values)


def get_user(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User", user_id)
    return user


def list_users(
    db: Session,
    *,
    page: int = 1,
    limit: int = 20,
    organization_id: UUID | None = None,
    role: str | None = None,
) -> dict:
    filters: dict = {}
    if organization_id:
        filters["organization_id"] = organization_id
    if role:
        filters["role"] = role
    return paginate(db, User, filters, page=page, limit=limit, order_by="name", order="ASC")


def update_user(db: Session, user_id: UUID, data: UserUpdate) -> User:
    user = get_user(db, user_id)
    values = data.model_dump(exclude_unset=True)
    if values.get("email") and _email_taken(db, values["email"], user.id):
        raise ValidationError("User with this email already exists", field="email")
    if values.get("role") is not None:
        values["role"] = values["role"].value
    return update_row(db, user, values)


def delete_user(db: Session, user_id: UUID) -> None:
    delete_row(db, get_user(db, user_id))
