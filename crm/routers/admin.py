"""Admin router - organizations and users across tenants.

The auth middleware already rejects non-admin roles on ``/api/admin/``;
``require_roles`` repeats the check for callers mounted elsewhere.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.core.deps import get_db, require_roles
from crm.db.enums import Role
from crm.schemas.common import MessageResponse
from crm.schemas.organization import (
    OrganizationCreate,
    OrganizationListResponse,
    OrganizationRead,
    OrganizationUpdate,
    UserCreate,
    UserListResponse,
    UserRead,
    UserUpdate,
)
from crm.services import organization_service
from crm.utils.pagination import DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_roles([Role.ADMIN]))],
)


# =============================================================================
# Organizations
# =============================================================================

@router.get("/organizations", response_model=OrganizationListResponse)
def list_organizations(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: Session = Depends(get_db),
):
    return organization_service.list_organizations(db, page=page, limit=limit)


@router.post("/organizations", response_model=OrganizationRead, status_code=201)
def create_organization(data: OrganizationCreate, db: Session = Depends(get_db)):
    org = organization_service.create_organization(db, data)
    db.commit()
    return org


@router.get("/organizations/{org_id}", response_model=OrganizationRead)
def get_organization(org_id: UUID, db: Session = Depends(get_db)):
    return organization_service.get_organization(db, org_id)


@router.put("/organizations/{org_id}", response_model=OrganizationRead)
def update_organization(org_id: UUID, data: OrganizationUpdate, db: Session = Depends(get_db)):
    org = organization_service.update_organization(db, org_id, data)
    db.commit()
    return org


@router.delete("/organizations/{org_id}", response_model=MessageResponse)
def delete_organization(org_id: UUID, db: Session = Depends(get_db)):
    """Delete an organization and everything scoped to it."""
    organization_service.delete_organization(db, org_id)
    db.commit()
    return {"message": "Organization deleted successfully"}


# =============================================================================
# Users
# =============================================================================

@router.get("/users", response_model=UserListResponse)
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    organization_id: UUID | None = None,
    role: Role | None = None,
    db: Session = Depends(get_db),
):
    return organization_service.list_users(
        db,
        page=page,
        limit=limit,
        organization_id=organization_id,
        role=role.value if role else None,
    )


@router.post("/users", response_model=UserRead, status_code=201)
def create_user(data: UserCreate, db: Session = Depends(get_db)):
    user = organization_service.create_user(db, data)
    db.commit()
    return user


@router.get("/users/{user_id}", response_model=UserRead)
def get_user(user_id: UUID, db: Session = Depends(get_db)):
    return organization_service.get_user(db, user_id)


@router.put("/users/{user_id}", response_model=UserRead)
def update_user(user_id: UUID, data: UserUpdate, db: Session = Depends(get_db)):
    user = organization_service.update_user(db, user_id, data)
    db.commit()
    return user


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(user_id: UUID, db: Session = Depends(get_db)):
    organization_service.delete_user(db, user_id)
    db.commit()
    return {"message": "User deleted successfully"}
