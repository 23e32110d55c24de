"""Deal service - deals with pipeline/stage/contact ownership checks."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from crm.core.exceptions import NotFoundError, ValidationError
from crm.db.access import delete_row, insert_row, paginate, update_row
from crm.db.enums import DealStatus
from crm.db.models import Contact, Deal, Pipeline, Stage
from crm.schemas.pipeline import DealCreate, DealUpdate


def _validate_refs(
    db: Session,
    org_id: UUID,
    pipeline_id: UUID,
    stage_id: UUID,
    contact_id: UUID | None,
) -> None:
    """Pipeline and contact must be in the org; stage must be in the pipeline."""
    pipeline = db.query(Pipeline.id).filter(
        Pipeline.id == pipeline_id,
        Pipeline.organization_id == org_id,
    ).first()
    if not pipeline:
        raise NotFoundError("Pipeline", pipeline_id)

    stage = db.query(Stage.id).filter(
        Stage.id == stage_id,
        Stage.pipeline_id == pipeline_id,
    ).first()
    if not stage:
        raise ValidationError("Stage does not belong to the pipeline", field="stage_id")

    if contact_id is not None:
        contact = db.query(Contact.id).filter(
            Contact.id == contact_id,
            Contact.organization_id == org_id,
        ).first()
        if not contact:
            raise NotFoundError("Contact", contact_id)


def create_deal(db: Session, org_id: UUID, data: DealCreate) -> Deal:
    _validate_refs(db, org_id, data.pipeline_id, data.stage_id, data.contact_id)
    values = data.model_dump()
    values["status"] = data.status.value
    values["currency"] = data.currency.upper()
    values["organization_id"] = org_id
    return insert_row(db, Deal, values)


def get_deal(db: Session, deal_id: UUID, org_id: UUID) -> Deal:
    deal = db.query(Deal).filter(Deal.id == deal_id, Deal.organization_id == org_id).first()
    if not deal:
        raise NotFoundError("Deal", deal_id)
    return deal


def list_deals(
    db: Session,
    org_id: UUID,
    *,
    page: int = 1,
    limit: int = 20,
    pipeline_id: UUID | None = None,
    stage_id: UUID | None = None,
    contact_id: UUID | None = None,
    status: str | None = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
) -> dict:
    filters: dict = {"organization_id": org_id}
    if pipeline_id:
        filters["pipeline_id"] = pipeline_id
    if stage_id:
        filters["stage_id"] = stage_id
    if contact_id:
        filters["contact_id"] = contact_id
    if status:
        filters["status"] = status
    return paginate(db, Deal, filters, page=page, limit=limit, order_by=sort_by, order=sort_dir)


def update_deal(db: Session, deal_id: UUID, org_id: UUID, data: DealUpdate) -> Deal:
    deal = get_deal(db, deal_id, org_id)
    values = data.model_dump(exclude_unset=True)

    pipeline_id = values.get("pipeline_id") or deal.pipeline_id
    stage_id = values.get("stage_id") or deal.stage_id
    contact_id = values["contact_id"] if "contact_id" in values else deal.contact_id
    if {"pipeline_id", "stage_id", "contact_id"} & values.keys():
        _validate_refs(db, org_id, pipeline_id, stage_id, contact_id)

    if values.get("status") is not None:
        values["status"] = values["status"].value
    if values.get("currency"):
        values["currency"] = values["currency"].upper()
    return update_row(db, deal, values)


def delete_deal(db: Session, deal_id: UUID, org_id: UUID) -> None:
    delete_row(db, get_deal(db, deal_id, org_id))


# =============================================================================
# Aggregates
# =============================================================================

def count_deals(db: Session, org_id: UUID, status: DealStatus | None = None) -> int:
    query = db.query(func.count(Deal.id)).filter(Deal.organization_id == org_id)
    if status:
        query = query.filter(Deal.status == status.value)
    return query.scalar() or 0


def sum_deal_value(db: Session, org_id: UUID, status: DealStatus | None = None) -> Decimal:
    query = db.query(func.coalesce(func.sum(Deal.value), 0)).filter(Deal.organization_id == org_id)
    if status:
        query = query.filter(Deal.status == status.value)
    return Decimal(str(query.scalar() or 0))
