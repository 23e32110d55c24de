"""Pipelines router - pipelines, their stages, and deals."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.core.deps import get_db, get_org_scope
from crm.schemas.common import MessageResponse
from crm.schemas.pipeline import (
    DealCreate,
    DealListResponse,
    DealRead,
    DealUpdate,
    PipelineCreate,
    PipelineRead,
    PipelineUpdate,
    StageCreate,
    StageRead,
    StageReorder,
    StageUpdate,
)
from crm.services import deal_service, pipeline_service
from crm.utils.pagination import DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter()


# =============================================================================
# Pipelines
# =============================================================================

@router.get("/pipelines", response_model=list[PipelineRead])
def list_pipelines(
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return pipeline_service.list_pipelines(db, org_id)


@router.post("/pipelines", response_model=PipelineRead, status_code=201)
def create_pipeline(
    data: PipelineCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Create a pipeline together with its initial stages."""
    pipeline = pipeline_service.create_pipeline(db, org_id, data)
    db.commit()
    return pipeline


@router.get("/pipelines/{pipeline_id}", response_model=PipelineRead)
def get_pipeline(
    pipeline_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return pipeline_service.get_pipeline(db, pipeline_id, org_id)


@router.put("/pipelines/{pipeline_id}", response_model=PipelineRead)
def update_pipeline(
    pipeline_id: UUID,
    data: PipelineUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    pipeline = pipeline_service.update_pipeline(db, pipeline_id, org_id, data)
    db.commit()
    return pipeline


@router.delete("/pipelines/{pipeline_id}", response_model=MessageResponse)
def delete_pipeline(
    pipeline_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Delete a pipeline, its stages and its deals."""
    pipeline_service.delete_pipeline(db, pipeline_id, org_id)
    db.commit()
    return {"message": "Pipeline deleted successfully"}


# =============================================================================
# Stages
# =============================================================================

@router.get("/pipelines/{pipeline_id}/stages", response_model=list[StageRead])
def list_stages(
    pipeline_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return pipeline_service.get_pipeline(db, pipeline_id, org_id).stages


@router.post("/pipelines/{pipeline_id}/stages", response_model=StageRead, status_code=201)
def add_stage(
    pipeline_id: UUID,
    data: StageCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    stage = pipeline_service.add_stage(db, pipeline_id, org_id, data)
    db.commit()
    return stage


@router.put("/pipelines/{pipeline_id}/stages/reorder", response_model=PipelineRead)
def reorder_stages(
    pipeline_id: UUID,
    data: StageReorder,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    pipeline = pipeline_service.reorder_stages(db, pipeline_id, org_id, data.stage_ids)
    db.commit()
    return pipeline


@router.put("/pipelines/{pipeline_id}/stages/{stage_id}", response_model=StageRead)
def update_stage(
    pipeline_id: UUID,
    stage_id: UUID,
    data: StageUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    stage = pipeline_service.update_stage(db, pipeline_id, stage_id, org_id, data)
    db.commit()
    return stage


@router.delete("/pipelines/{pipeline_id}/stages/{stage_id}", response_model=MessageResponse)
def delete_stage(
    pipeline_id: UUID,
    stage_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    pipeline_service.delete_stage(db, pipeline_id, stage_id, org_id)
    db.commit()
    return {"message": "Stage deleted successfully"}


# =============================================================================
# Deals
# =============================================================================

@router.get("/deals", response_model=DealListResponse)
def list_deals(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    pipeline_id: UUID | None = None,
    stage_id: UUID | None = None,
    contact_id: UUID | None = None,
    status: str | None = None,
    sort_by: str = "created_at",
    sort_dir: str = "desc",
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return deal_service.list_deals(
        db,
        org_id,
        page=page,
        limit=limit,
        pipeline_id=pipeline_id,
        stage_id=stage_id,
        contact_id=contact_id,
        status=status,
        sort_by=sort_by,
        sort_dir=sort_dir,
    )


@router.post("/deals", response_model=DealRead, status_code=201)
def create_deal(
    data: DealCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    deal = deal_service.create_deal(db, org_id, data)
    db.commit()
    return deal


@router.get("/deals/{deal_id}", response_model=DealRead)
def get_deal(
    deal_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return deal_service.get_deal(db, deal_id, org_id)


@router.put("/deals/{deal_id}", response_model=DealRead)
def update_deal(
    deal_id: UUID,
    data: DealUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    deal = deal_service.update_deal(db, deal_id, org_id, data)
    db.commit()
    return deal


@router.delete("/deals/{deal_id}", response_model=MessageResponse)
def delete_deal(
    deal_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    deal_service.delete_deal(db, deal_id, org_id)
    db.commit()
    return {"message": "Deal deleted successfully"}
