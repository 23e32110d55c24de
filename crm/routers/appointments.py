"""Appointments router - scheduling and lifecycle transitions."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.core.deps import get_db, get_org_scope
from crm.db.enums import AppointmentStatus
from crm.schemas.appointment import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentRead,
    AppointmentUpdate,
)
from crm.schemas.common import MessageResponse
from crm.services import appointment_service
from crm.utils.pagination import MAX_LIMIT

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("", response_model=AppointmentListResponse)
def list_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_LIMIT),
    contact_id: UUID | None = None,
    user_id: UUID | None = None,
    status: AppointmentStatus | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """List appointments ordered by start time."""
    return appointment_service.list_appointments(
        db,
        org_id,
        page=page,
        limit=limit,
        contact_id=contact_id,
        user_id=user_id,
        status=status.value if status else None,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/upcoming", response_model=list[AppointmentRead])
def upcoming_appointments(
    user_id: UUID | None = None,
    days: int = Query(appointment_service.UPCOMING_DAYS, ge=1, le=365),
    limit: int = Query(appointment_service.UPCOMING_LIMIT, ge=1, le=MAX_LIMIT),
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Scheduled appointments starting within the next ``days`` days."""
    return appointment_service.get_upcoming_appointments(
        db, org_id, user_id=user_id, days=days, limit=limit
    )


@router.post("", response_model=AppointmentRead, status_code=201)
def create_appointment(
    data: AppointmentCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    appointment = appointment_service.create_appointment(db, org_id, data)
    db.commit()
    return appointment


@router.get("/{appointment_id}", response_model=AppointmentRead)
def get_appointment(
    appointment_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return appointment_service.get_appointment(db, appointment_id, org_id)


@router.put("/{appointment_id}", response_model=AppointmentRead)
def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    appointment = appointment_service.update_appointment(db, appointment_id, org_id, data)
    db.commit()
    return appointment


@router.delete("/{appointment_id}", response_model=MessageResponse)
def delete_appointment(
    appointment_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    appointment_service.delete_appointment(db, appointment_id, org_id)
    db.commit()
    return {"message": "Appointment deleted successfully"}


# =============================================================================
# Transitions
# =============================================================================

@router.post("/{appointment_id}/confirm", response_model=AppointmentRead)
def confirm_appointment(
    appointment_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    appointment = appointment_service.confirm_appointment(db, appointment_id, org_id)
    db.commit()
    return appointment


@router.post("/{appointment_id}/cancel", response_model=AppointmentRead)
def cancel_appointment(
    appointment_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    appointment = appointment_service.cancel_appointment(db, appointment_id, org_id)
    db.commit()
    return appointment


@router.post("/{appointment_id}/complete", response_model=AppointmentRead)
def complete_appointment(
    appointment_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    appointment = appointment_service.complete_appointment(db, appointment_id, org_id)
    db.commit()
    return appointment
