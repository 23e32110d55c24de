"""Courses router - courses, modules and lessons."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm.core.deps import get_db, get_org_scope
from crm.schemas.common import MessageResponse
from crm.schemas.course import (
    CourseCreate,
    CourseDetail,
    CourseListResponse,
    CourseRead,
    CourseUpdate,
    LessonCreate,
    LessonRead,
    LessonUpdate,
    ModuleCreate,
    ModuleRead,
    ModuleUpdate,
    Reorder,
)
from crm.services import course_service
from crm.utils.pagination import DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter(prefix="/courses", tags=["courses"])


# =============================================================================
# Courses
# =============================================================================

@router.get("", response_model=CourseListResponse)
def list_courses(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    is_published: bool | None = None,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return course_service.list_courses(db, org_id, page=page, limit=limit, is_published=is_published)


@router.post("", response_model=CourseRead, status_code=201)
def create_course(
    data: CourseCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    course = course_service.create_course(db, org_id, data)
    db.commit()
    return course


@router.get("/{course_id}", response_model=CourseDetail)
def get_course(
    course_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    """Course with its modules and their lessons, in order."""
    return course_service.get_course(db, course_id, org_id)


@router.put("/{course_id}", response_model=CourseRead)
def update_course(
    course_id: UUID,
    data: CourseUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    course = course_service.update_course(db, course_id, org_id, data)
    db.commit()
    return course


@router.delete("/{course_id}", response_model=MessageResponse)
def delete_course(
    course_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    course_service.delete_course(db, course_id, org_id)
    db.commit()
    return {"message": "Course deleted successfully"}


@router.post("/{course_id}/publish", response_model=CourseRead)
def publish_course(
    course_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    course = course_service.set_published(db, course_id, org_id, True)
    db.commit()
    return course


@router.post("/{course_id}/unpublish", response_model=CourseRead)
def unpublish_course(
    course_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    course = course_service.set_published(db, course_id, org_id, False)
    db.commit()
    return course


# =============================================================================
# Modules
# =============================================================================

@router.post("/{course_id}/modules", response_model=ModuleRead, status_code=201)
def add_module(
    course_id: UUID,
    data: ModuleCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    module = course_service.add_module(db, course_id, org_id, data)
    db.commit()
    return module


@router.put("/{course_id}/modules/reorder", response_model=CourseDetail)
def reorder_modules(
    course_id: UUID,
    data: Reorder,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    course = course_service.reorder_modules(db, course_id, org_id, data.ids)
    db.commit()
    return course


@router.get("/{course_id}/modules/{module_id}", response_model=ModuleRead)
def get_module(
    course_id: UUID,
    module_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return course_service.get_module(db, course_id, module_id, org_id)


@router.put("/{course_id}/modules/{module_id}", response_model=ModuleRead)
def update_module(
    course_id: UUID,
    module_id: UUID,
    data: ModuleUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    module = course_service.update_module(db, course_id, module_id, org_id, data)
    db.commit()
    return module


@router.delete("/{course_id}/modules/{module_id}", response_model=MessageResponse)
def delete_module(
    course_id: UUID,
    module_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    course_service.delete_module(db, course_id, module_id, org_id)
    db.commit()
    return {"message": "Module deleted successfully"}


# =============================================================================
# Lessons
# =============================================================================

@router.post("/{course_id}/modules/{module_id}/lessons", response_model=LessonRead, status_code=201)
def add_lesson(
    course_id: UUID,
    module_id: UUID,
    data: LessonCreate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    lesson = course_service.add_lesson(db, course_id, module_id, org_id, data)
    db.commit()
    return lesson


@router.put("/{course_id}/modules/{module_id}/lessons/reorder", response_model=ModuleRead)
def reorder_lessons(
    course_id: UUID,
    module_id: UUID,
    data: Reorder,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    module = course_service.reorder_lessons(db, course_id, module_id, org_id, data.ids)
    db.commit()
    return module


@router.get("/{course_id}/modules/{module_id}/lessons/{lesson_id}", response_model=LessonRead)
def get_lesson(
    course_id: UUID,
    module_id: UUID,
    lesson_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    return course_service.get_lesson(db, course_id, module_id, lesson_id, org_id)


@router.put("/{course_id}/modules/{module_id}/lessons/{lesson_id}", response_model=LessonRead)
def update_lesson(
    course_id: UUID,
    module_id: UUID,
    lesson_id: UUID,
    data: LessonUpdate,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    lesson = course_service.update_lesson(db, course_id, module_id, lesson_id, org_id, data)
    db.commit()
    return lesson


@router.delete("/{course_id}/modules/{module_id}/lessons/{lesson_id}", response_model=MessageResponse)
def delete_lesson(
    course_id: UUID,
    module_id: UUID,
    lesson_id: UUID,
    org_id: UUID = Depends(get_org_scope),
    db: Session = Depends(get_db),
):
    course_service.delete_lesson(db, course_id, module_id, lesson_id, org_id)
    db.commit()
    return {"message": "Lesson deleted successfully"}
