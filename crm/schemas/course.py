"""Course, module and lesson schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from crm.schemas.common import PaginationMeta


# =============================================================================
# Lessons
# =============================================================================

class LessonCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str | None = None
    order_index: int | None = Field(None, ge=0)


class LessonUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = None


class LessonRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    module_id: UUID
    title: str
    content: str | None
    order_index: int


# =============================================================================
# Modules
# =============================================================================

class ModuleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    order_index: int | None = Field(None, ge=0)


class ModuleUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class ModuleRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    course_id: UUID
    title: str
    description: str | None
    order_index: int
    lessons: list[LessonRead]


class Reorder(BaseModel):
    """Complete ordering of a parent's child ids."""
    ids: list[UUID] = Field(..., min_length=1)


# =============================================================================
# Courses
# =============================================================================

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class CourseUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class CourseRead(BaseModel):
    model_config = {"from_attributes": True}

    id: UUID
    title: str
    description: str | None
    is_published: bool
    created_at: datetime
    updated_at: datetime


class CourseDetail(CourseRead):
    modules: list[ModuleRead]


class CourseListResponse(BaseModel):
    data: list[CourseRead]
    pagination: PaginationMeta
