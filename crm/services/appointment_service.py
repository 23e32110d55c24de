"""Appointment service - scheduling and status transitions.

Transitions:
    scheduled → confirmed → completed
    scheduled|confirmed → cancelled
Completed and cancelled appointments are frozen for edits.
"""

from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from crm.core.exceptions import NotFoundError, ValidationError
from crm.db.access import delete_row, insert_row, paginate, update_row
from crm.db.enums import AppointmentStatus
from crm.db.models import Appointment, Contact, User
from crm.db.types import as_utc, utcnow
from crm.schemas.appointment import AppointmentCreate, AppointmentUpdate

FROZEN_STATUSES = {AppointmentStatus.COMPLETED.value, AppointmentStatus.CANCELLED.value}
UPCOMING_DAYS = 7
UPCOMING_LIMIT = 10


def _check_participants(db: Session, org_id: UUID, contact_id: UUID | None, user_id: UUID | None) -> None:
    """Contact and user, when given, must belong to the org."""
    if contact_id is not None:
        found = db.query(Contact.id).filter(
            Contact.id == contact_id,
            Contact.organization_id == org_id,
        ).first()
        if not found:
            raise NotFoundError("Contact", contact_id)
    if user_id is not None:
        found = db.query(User.id).filter(
            User.id == user_id,
            User.organization_id == org_id,
        ).first()
        if not found:
            raise NotFoundError("User", user_id)


def _normalize_times(values: dict) -> dict:
    for key in ("start_time", "end_time", "reminder_time"):
        if values.get(key) is not None:
            values[key] = as_utc(values[key])
    return values


# =============================================================================
# CRUD Operations
# =============================================================================

def create_appointment(db: Session, org_id: UUID, data: AppointmentCreate) -> Appointment:
    _check_participants(db, org_id, data.contact_id, data.user_id)
    values = _normalize_times(data.model_dump())
    values["organization_id"] = org_id
    values["status"] = AppointmentStatus.SCHEDULED.value
    return insert_row(db, Appointment, values)


def get_appointment(db: Session, appointment_id: UUID, org_id: UUID) -> Appointment:
    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.organization_id == org_id,
    ).first()
    if not appointment:
        raise NotFoundError("Appointment", appointment_id)
    return appointment


def list_appointments(
    db: Session,
    org_id: UUID,
    *,
    page: int = 1,
    limit: int = 50,
    contact_id: UUID | None = None,
    user_id: UUID | None = None,
    status: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> dict:
    """Appointments in start_time order, optionally bounded by a date window."""
    filters: dict = {"organization_id": org_id}
    if contact_id:
        filters["contact_id"] = contact_id
    if user_id:
        filters["user_id"] = user_id
    if status:
        filters["status"] = status

    query = db.query(Appointment)
    if start_date:
        query = query.filter(Appointment.start_time >= as_utc(start_date))
    if end_date:
        query = query.filter(Appointment.end_time <= as_utc(end_date))
    return paginate(db, Appointment, filters, page=page, limit=limit, order_by="start_time", order="ASC", query=query)


def get_upcoming_appointments(
    db: Session,
    org_id: UUID,
    *,
    user_id: UUID | None = None,
    days: int = UPCOMING_DAYS,
    limit: int = UPCOMING_LIMIT,
) -> list[Appointment]:
    """Scheduled appointments starting within the next ``days`` days."""
    now = utcnow()
    query = db.query(Appointment).filter(
        Appointment.organization_id == org_id,
        Appointment.status == AppointmentStatus.SCHEDULED.value,
        Appointment.start_time >= now,
        Appointment.start_time <= now + timedelta(days=days),
    )
    if user_id:
        query = query.filter(Appointment.user_id == user_id)
    return query.order_by(Appointment.start_time).limit(limit).all()


def update_appointment(db: Session, appointment_id: UUID, org_id: UUID, data: AppointmentUpdate) -> Appointment:
    appointment = get_appointment(db, appointment_id, org_id)
    if appointment.status in FROZEN_STATUSES:
        raise ValidationError(f"Cannot update a {appointment.status} appointment")

    values = _normalize_times(data.model_dump(exclude_unset=True))
    if "contact_id" in values or "user_id" in values:
        _check_participants(db, org_id, values.get("contact_id"), values.get("user_id"))

    start = values.get("start_time") or as_utc(appointment.start_time)
    end = values.get("end_time") or as_utc(appointment.end_time)
    if end <= start:
        raise ValidationError("end_time must be after start_time", field="end_time")
    return update_row(db, appointment, values)


def delete_appointment(db: Session, appointment_id: UUID, org_id: UUID) -> None:
    delete_row(db, get_appointment(db, appointment_id, org_id))


# =============================================================================
# Status Transitions
# =============================================================================

def confirm_appointment(db: Session, appointment_id: UUID, org_id: UUID) -> Appointment:
    """Only scheduled appointments can be confirmed."""
    appointment = get_appointment(db, appointment_id, org_id)
    if appointment.status != AppointmentStatus.SCHEDULED.value:
        raise ValidationError(f"Cannot confirm a {appointment.status} appointment")
    return update_row(db, appointment, {"status": AppointmentStatus.CONFIRMED.value})


def cancel_appointment(db: Session, appointment_id: UUID, org_id: UUID) -> Appointment:
    appointment = get_appointment(db, appointment_id, org_id)
    if appointment.status == AppointmentStatus.COMPLETED.value:
        raise ValidationError("Cannot cancel a completed appointment")
    return update_row(db, appointment, {"status": AppointmentStatus.CANCELLED.value})


def complete_appointment(db: Session, appointment_id: UUID, org_id: UUID) -> Appointment:
    appointment = get_appointment(db, appointment_id, org_id)
    if appointment.status == AppointmentStatus.CANCELLED.value:
        raise ValidationError("Cannot complete a cancelled appointment")
    return update_row(db, appointment, {"status": AppointmentStatus.COMPLETED.value})
