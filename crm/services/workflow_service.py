"""Workflow service - trigger definitions and their ordered steps.

Only the definitions live here; executing a workflow is out of scope.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from crm.core.exceptions import NotFoundError, ValidationError
from crm.db.access import delete_row, insert_row, paginate, update_row, update_where
from crm.db.enums import WorkflowStepType, WorkflowTriggerType
from crm.db.models import Workflow, WorkflowStep
from crm.schemas.workflow import (
    WorkflowCreate,
    WorkflowStepAdd,
    WorkflowStepCreate,
    WorkflowStepUpdate,
    WorkflowUpdate,
    check_step_config,
)

logger = logging.getLogger(__name__)


def _insert_steps(db: Session, workflow_id: UUID, steps: list[WorkflowStepCreate]) -> None:
    for index, step in enumerate(steps):
        insert_row(db, WorkflowStep, {
            "workflow_id": workflow_id,
            "step_type": step.step_type.value,
            "step_config": step.step_config,
            "order_index": index,
        })


def _renumber(steps: list[WorkflowStep]) -> None:
    for index, step in enumerate(steps):
        step.order_index = index


# =============================================================================
# Workflows
# =============================================================================

def create_workflow(db: Session, org_id: UUID, data: WorkflowCreate) -> Workflow:
    """Create an inactive workflow with its steps in the given order."""
    workflow = insert_row(db, Workflow, {
        "organization_id": org_id,
        "name": data.name,
        "description": data.description,
        "trigger_type": data.trigger_type.value,
        "trigger_config": data.trigger_config,
        "is_active": False,
    })
    _insert_steps(db, workflow.id, data.steps)
    db.refresh(workflow)
    return workflow


def get_workflow(db: Session, workflow_id: UUID, org_id: UUID) -> Workflow:
    workflow = db.query(Workflow).options(selectinload(Workflow.steps)).filter(
        Workflow.id == workflow_id,
        Workflow.organization_id == org_id,
    ).first()
    if not workflow:
        raise NotFoundError("Workflow", workflow_id)
    return workflow


def list_workflows(
    db: Session,
    org_id: UUID,
    *,
    page: int = 1,
    limit: int = 20,
    is_active: bool | None = None,
    trigger_type: str | None = None,
) -> dict:
    filters: dict = {"organization_id": org_id}
    if is_active is not None:
        filters["is_active"] = is_active
    if trigger_type:
        filters["trigger_type"] = trigger_type
    query = db.query(Workflow).options(selectinload(Workflow.steps))
    return paginate(db, Workflow, filters, page=page, limit=limit, order_by="name", order="ASC", query=query)


def get_active_workflows_by_trigger(db: Session, org_id: UUID, trigger_type: WorkflowTriggerType) -> list[Workflow]:
    return db.query(Workflow).options(selectinload(Workflow.steps)).filter(
        Workflow.organization_id == org_id,
        Workflow.trigger_type == trigger_type.value,
        Workflow.is_active.is_(True),
    ).order_by(Workflow.name).all()


def update_workflow(db: Session, workflow_id: UUID, org_id: UUID, data: WorkflowUpdate) -> Workflow:
    """Partial update; a ``steps`` list replaces the existing steps wholesale."""
    workflow = get_workflow(db, workflow_id, org_id)
    values = data.model_dump(exclude_unset=True, exclude={"steps"})
    if values.get("trigger_type") is not None:
        values["trigger_type"] = values["trigger_type"].value
    update_row(db, workflow, values)

    if data.steps is not None:
        workflow.steps.clear()
        db.flush()
        _insert_steps(db, workflow.id, data.steps)
        db.refresh(workflow)
    return workflow


def delete_workflow(db: Session, workflow_id: UUID, org_id: UUID) -> None:
    delete_row(db, get_workflow(db, workflow_id, org_id))


def _set_active(db: Session, workflow_id: UUID, org_id: UUID, active: bool) -> tuple[Workflow, bool]:
    workflow = get_workflow(db, workflow_id, org_id)
    changed = update_where(
        db, Workflow, {"is_active": active},
        Workflow.id == workflow.id,
        Workflow.is_active == (not active),
    ) > 0
    if changed:
        db.refresh(workflow)
        logger.info("Workflow %s %s", workflow.id, "activated" if active else "deactivated")
    return workflow, changed


def activate_workflow(db: Session, workflow_id: UUID, org_id: UUID) -> tuple[Workflow, bool]:
    """
    Turn a workflow on.

    Returns:
        (workflow, changed) - changed is False when it was already active,
        in which case nothing is written.
    """
    return _set_active(db, workflow_id, org_id, True)


def deactivate_workflow(db: Session, workflow_id: UUID, org_id: UUID) -> tuple[Workflow, bool]:
    return _set_active(db, workflow_id, org_id, False)


# =============================================================================
# Steps
# =============================================================================

def get_step(db: Session, workflow_id: UUID, step_id: UUID, org_id: UUID) -> WorkflowStep:
    workflow = get_workflow(db, workflow_id, org_id)
    step = next((s for s in workflow.steps if s.id == step_id), None)
    if not step:
        raise NotFoundError("Workflow step", step_id)
    return step


def list_steps(db: Session, workflow_id: UUID, org_id: UUID) -> list[WorkflowStep]:
    return list(get_workflow(db, workflow_id, org_id).steps)


def add_step(db: Session, workflow_id: UUID, org_id: UUID, data: WorkflowStepAdd) -> WorkflowStep:
    """Insert a step at ``order_index`` (clamped), or append it."""
    workflow = get_workflow(db, workflow_id, org_id)
    steps = list(workflow.steps)
    index = len(steps) if data.order_index is None else min(data.order_index, len(steps))

    step = WorkflowStep(
        step_type=data.step_type.value,
        step_config=data.step_config,
    )
    steps.insert(index, step)
    _renumber(steps)
    workflow.steps = steps
    update_row(db, workflow, {})
    return step


def update_step(
    db: Session,
    workflow_id: UUID,
    step_id: UUID,
    org_id: UUID,
    data: WorkflowStepUpdate,
) -> WorkflowStep:
    step = get_step(db, workflow_id, step_id, org_id)
    step_type = data.step_type or WorkflowStepType(step.step_type)
    config = data.step_config if data.step_config is not None else step.step_config
    try:
        check_step_config(step_type, config)
    except ValueError as e:
        raise ValidationError(str(e), field="step_config") from e

    return update_row(db, step, {"step_type": step_type.value, "step_config": config})


def delete_step(db: Session, workflow_id: UUID, step_id: UUID, org_id: UUID) -> None:
    """Remove a step and close the gap in order_index."""
    workflow = get_workflow(db, workflow_id, org_id)
    step = next((s for s in workflow.steps if s.id == step_id), None)
    if not step:
        raise NotFoundError("Workflow step", step_id)

    workflow.steps.remove(step)
    _renumber(workflow.steps)
    update_row(db, workflow, {})
