"""Workflows router - automation definitions and their ordered steps."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.core.deps import get_db, get_org_scope
from crm.db.enums import WorkflowTriggerType
from crm.schemas.common import MessageResponse
from crm.schemas.workflow import (
    WorkflowCreate,
    WorkflowListResponse,
    WorkflowRead,
    WorkflowStepAdd,
    WorkflowStepRead,
    WorkflowStepUpdate,
    WorkflowToggleResponse,
    WorkflowUpdate,
)
from crm.services import workflow_service
from crm.utils.pagination import DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.get("", response_model=WorkflowListResponse)
def list_workflows(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    is_active: bool | None = None,
    trigger_type: WorkflowTriggerType | None = None,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return workflow_service.list_workflows(
        db,
        org_id,
        page=page,
        limit=limit,
        is_active=is_active,
        trigger_type=trigger_type.value if trigger_type else None,
    )


@router.post("", response_model=WorkflowRead, status_code=201)
def create_workflow(
    data: WorkflowCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Create an inactive workflow with its initial steps."""
    workflow = workflow_service.create_workflow(db, org_id, data)
    db.commit()
    return workflow


@router.get("/{workflow_id}", response_model=WorkflowRead)
def get_workflow(
    workflow_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return workflow_service.get_workflow(db, workflow_id, org_id)


@router.put("/{workflow_id}", response_model=WorkflowRead)
def update_workflow(
    workflow_id: UUID,
    data: WorkflowUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Partial update. A ``steps`` list replaces every existing step."""
    workflow = workflow_service.update_workflow(db, workflow_id, org_id, data)
    db.commit()
    return workflow


@router.delete("/{workflow_id}", response_model=MessageResponse)
def delete_workflow(
    workflow_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    workflow_service.delete_workflow(db, workflow_id, org_id)
    db.commit()
    return {"message": "Workflow deleted successfully"}


@router.post("/{workflow_id}/activate", response_model=WorkflowToggleResponse)
def activate_workflow(
    workflow_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    workflow, changed = workflow_service.activate_workflow(db, workflow_id, org_id)
    db.commit()
    message = "Workflow activated" if changed else "Workflow is already active"
    return {"message": message, "workflow": workflow}


@router.post("/{workflow_id}/deactivate", response_model=WorkflowToggleResponse)
def deactivate_workflow(
    workflow_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    workflow, changed = workflow_service.deactivate_workflow(db, workflow_id, org_id)
    db.commit()
    message = "Workflow deactivated" if changed else "Workflow is already inactive"
    return {"message": message, "workflow": workflow}


# =============================================================================
# Steps
# =============================================================================

@router.get("/{workflow_id}/steps", response_model=list[WorkflowStepRead])
def list_steps(
    workflow_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return workflow_service.list_steps(db, workflow_id, org_id)


@router.post("/{workflow_id}/steps", response_model=WorkflowStepRead, status_code=201)
def add_step(
    workflow_id: UUID,
    data: WorkflowStepAdd,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    step = workflow_service.add_step(db, workflow_id, org_id, data)
    db.commit()
    return step


@router.get("/{workflow_id}/steps/{step_id}", response_model=WorkflowStepRead)
def get_step(
    workflow_id: UUID,
    step_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return workflow_service.get_step(db, workflow_id, step_id, org_id)


@router.put("/{workflow_id}/steps/{step_id}", response_model=WorkflowStepRead)
def update_step(
    workflow_id: UUID,
    step_id: UUID,
    data: WorkflowStepUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    step = workflow_service.update_step(db, workflow_id, step_id, org_id, data)
    db.commit()
    return step


@router.delete("/{workflow_id}/steps/{step_id}", response_model=MessageResponse)
def delete_step(
    workflow_id: UUID,
    step_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    workflow_service.delete_step(db, workflow_id, step_id, org_id)
    db.commit()
    return {"message": "Workflow step deleted successfully"}
