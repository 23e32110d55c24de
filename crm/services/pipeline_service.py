"""Pipeline service - pipelines and their ordered stages."""

from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from crm.core.exceptions import NotFoundError, ValidationError
from crm.db.access import delete_row, delete_where, insert_row, update_row
from crm.db.models import Deal, Pipeline, Stage
from crm.schemas.pipeline import PipelineCreate, PipelineUpdate, StageCreate, StageUpdate


def _name_taken(db: Session, org_id: UUID, name: str, exclude_id: UUID | None = None) -> bool:
    query = db.query(Pipeline.id).filter(
        Pipeline.organization_id == org_id,
        Pipeline.name == name,
    )
    if exclude_id:
        query = query.filter(Pipeline.id != exclude_id)
    return query.first() is not None


def _renumber(stages: list[Stage]) -> None:
    for index, stage in enumerate(stages):
        stage.position = index


# =============================================================================
# Pipelines
# =============================================================================

def create_pipeline(db: Session, org_id: UUID, data: PipelineCreate) -> Pipeline:
    """Create a pipeline with its initial stages in the given order."""
    if _name_taken(db, org_id, data.name):
        raise ValidationError("Pipeline with this name already exists", field="name")

    pipeline = insert_row(db, Pipeline, {
        "organization_id": org_id,
        "name": data.name,
        "description": data.description,
    })
    for index, stage in enumerate(data.stages):
        insert_row(db, Stage, {
            "pipeline_id": pipeline.id,
            "name": stage.name,
            "description": stage.description,
            "position": index,
        })
    db.refresh(pipeline)
    return pipeline


def get_pipeline(db: Session, pipeline_id: UUID, org_id: UUID) -> Pipeline:
    pipeline = db.query(Pipeline).options(selectinload(Pipeline.stages)).filter(
        Pipeline.id == pipeline_id,
        Pipeline.organization_id == org_id,
    ).first()
    if not pipeline:
        raise NotFoundError("Pipeline", pipeline_id)
    return pipeline


def list_pipelines(db: Session, org_id: UUID) -> list[Pipeline]:
    return db.query(Pipeline).options(selectinload(Pipeline.stages)).filter(
        Pipeline.organization_id == org_id
    ).order_by(Pipeline.created_at).all()


def update_pipeline(db: Session, pipeline_id: UUID, org_id: UUID, data: PipelineUpdate) -> Pipeline:
    pipeline = get_pipeline(db, pipeline_id, org_id)
    if data.name is not None and data.name != pipeline.name and _name_taken(db, org_id, data.name, pipeline.id):
        raise ValidationError("Pipeline with this name already exists", field="name")
    return update_row(db, pipeline, data.model_dump(exclude_unset=True))


def delete_pipeline(db: Session, pipeline_id: UUID, org_id: UUID) -> None:
    """Delete a pipeline together with its stages and deals."""
    pipeline = get_pipeline(db, pipeline_id, org_id)
    delete_where(db, Deal, Deal.pipeline_id == pipeline.id)
    delete_row(db, pipeline)


# =============================================================================
# Stages
# =============================================================================

def get_stage(db: Session, pipeline_id: UUID, stage_id: UUID, org_id: UUID) -> Stage:
    pipeline = get_pipeline(db, pipeline_id, org_id)
    stage = next((s for s in pipeline.stages if s.id == stage_id), None)
    if not stage:
        raise NotFoundError("Stage", stage_id)
    return stage


def add_stage(db: Session, pipeline_id: UUID, org_id: UUID, data: StageCreate) -> Stage:
    """Append a stage at the end of the pipeline."""
    pipeline = get_pipeline(db, pipeline_id, org_id)
    stage = insert_row(db, Stage, {
        "pipeline_id": pipeline.id,
        "name": data.name,
        "description": data.description,
        "position": len(pipeline.stages),
    })
    db.refresh(pipeline)
    return stage


def update_stage(db: Session, pipeline_id: UUID, stage_id: UUID, org_id: UUID, data: StageUpdate) -> Stage:
    stage = get_stage(db, pipeline_id, stage_id, org_id)
    return update_row(db, stage, data.model_dump(exclude_unset=True))


def delete_stage(db: Session, pipeline_id: UUID, stage_id: UUID, org_id: UUID) -> None:
    """Delete an empty stage and close the gap in positions."""
    pipeline = get_pipeline(db, pipeline_id, org_id)
    stage = next((s for s in pipeline.stages if s.id == stage_id), None)
    if not stage:
        raise NotFoundError("Stage", stage_id)

    has_deals = db.query(Deal.id).filter(Deal.stage_id == stage.id).first() is not None
    if has_deals:
        raise ValidationError("Cannot delete a stage that has deals")

    pipeline.stages.remove(stage)
    _renumber(pipeline.stages)
    update_row(db, pipeline, {})


def reorder_stages(db: Session, pipeline_id: UUID, org_id: UUID, stage_ids: list[UUID]) -> Pipeline:
    """Assign positions from a complete, duplicate-free list of the pipeline's stage ids."""
    pipeline = get_pipeline(db, pipeline_id, org_id)
    by_id = {s.id: s for s in pipeline.stages}

    if len(stage_ids) != len(set(stage_ids)) or set(stage_ids) != set(by_id):
        raise ValidationError("stage_ids must list every stage of the pipeline exactly once", field="stage_ids")

    _renumber([by_id[stage_id] for stage_id in stage_ids])
    update_row(db, pipeline, {})
    db.refresh(pipeline)
    return pipeline
