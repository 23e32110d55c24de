"""Workflow and workflow step schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from crm.db.enums import WorkflowStepType, WorkflowTriggerType
from crm.schemas.common import PaginationMeta

# Keys each step type needs in its step_config
STEP_REQUIRED_KEYS: dict[WorkflowStepType, tuple[str, ...]] = {
    WorkflowStepType.SEND_EMAIL: ("subject",),
    WorkflowStepType.WAIT: ("delay_minutes",),
    WorkflowStepType.ADD_TAG: ("tag_id",),
    WorkflowStepType.REMOVE_TAG: ("tag_id",),
    WorkflowStepType.UPDATE_CONTACT: ("fields",),
    WorkflowStepType.CREATE_TASK: ("title",),
    WorkflowStepType.WEBHOOK: ("url",),
    WorkflowStepType.CONDITION: ("field", "operator"),
}


def check_step_config(step_type: WorkflowStepType, config: dict[str, Any]) -> None:
    missing = [key for key in STEP_REQUIRED_KEYS[step_type] if key not in config]
    if missing:
        raise ValueError(f"step_config for {step_type.value} is missing: {', '.join(missing)}")
    if step_type == WorkflowStepType.WAIT:
        delay = config["delay_minutes"]
        if isinstance(delay, bool) or not isinstance(delay, int) or delay <= 0:
            raise ValueError("delay_minutes must be a positive integer")


class WorkflowStepCreate(BaseModel):
    step_type: WorkflowStepType
    step_config: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_config(self):
        check_step_config(self.step_type, self.step_config)
        return self


class WorkflowStepAdd(WorkflowStepCreate):
    """Single step added to an existing workflow; appended when no index given."""
    order_index: int | None = Field(None, ge=0)


class WorkflowStepUpdate(BaseModel):
    step_type: WorkflowStepType | None = None
    step_config: dict[str, Any] | None = None


class WorkflowStepRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    workflow_id: UUID
    step_type: str
    step_config: dict[str, Any]
    order_index: int


class WorkflowCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    trigger_type: WorkflowTriggerType
    trigger_config: dict[str, Any] | None = None
    steps: list[WorkflowStepCreate] = Field(default_factory=list)


class WorkflowUpdate(BaseModel):
    """Partial update. ``steps``, when present, replaces the whole step list."""
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    trigger_type: WorkflowTriggerType | None = None
    trigger_config: dict[str, Any] | None = None
    steps: list[WorkflowStepCreate] | None = None


class WorkflowRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    name: str
    description: str | None
    trigger_type: str
    trigger_config: dict[str, Any] | None
    is_active: bool
    steps: list[WorkflowStepRead]
    created_at: datetime
    updated_at: datetime


class WorkflowListResponse(BaseModel):
    data: list[WorkflowRead]
    pagination: PaginationMeta


class WorkflowToggleResponse(BaseModel):
    message: str
    workflow: WorkflowRead
