"""Course service - courses, their modules and lessons.

Modules and lessons keep a dense 0-based order_index; inserts shift later
siblings down, deletes close the gap.
"""

from typing import Any, Sequence
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from crm.core.exceptions import NotFoundError, ValidationError
from crm.db.access import delete_row, insert_row, paginate, update_row
from crm.db.models import Course, CourseLesson, CourseModule
from crm.schemas.course import (
    CourseCreate,
    CourseUpdate,
    LessonCreate,
    LessonUpdate,
    ModuleCreate,
    ModuleUpdate,
)


def _renumber(items: Sequence[Any]) -> None:
    for index, item in enumerate(items):
        item.order_index = index


def _insert_at(siblings: list, item: Any, index: int | None) -> list:
    position = len(siblings) if index is None else min(index, len(siblings))
    ordered = list(siblings)
    ordered.insert(position, item)
    _renumber(ordered)
    return ordered


def _check_complete(ids: list[UUID], existing: set[UUID], what: str) -> None:
    if len(ids) != len(set(ids)) or set(ids) != existing:
        raise ValidationError(f"ids must list every {what} exactly once", field="ids")


# =============================================================================
# Courses
# =============================================================================

def create_course(db: Session, org_id: UUID, data: CourseCreate) -> Course:
    values = data.model_dump()
    values["organization_id"] = org_id
    values["is_published"] = False
    return insert_row(db, Course, values)


def get_course(db: Session, course_id: UUID, org_id: UUID) -> Course:
    course = db.query(Course).options(
        selectinload(Course.modules).selectinload(CourseModule.lessons)
    ).filter(
        Course.id == course_id,
        Course.organization_id == org_id,
    ).first()
    if not course:
        raise NotFoundError("Course", course_id)
    return course


def list_courses(
    db: Session,
    org_id: UUID,
    *,
    page: int = 1,
    limit: int = 20,
    is_published: bool | None = None,
) -> dict:
    filters: dict = {"organization_id": org_id}
    if is_published is not None:
        filters["is_published"] = is_published
    return paginate(db, Course, filters, page=page, limit=limit)


def update_course(db: Session, course_id: UUID, org_id: UUID, data: CourseUpdate) -> Course:
    course = get_course(db, course_id, org_id)
    return update_row(db, course, data.model_dump(exclude_unset=True))


def delete_course(db: Session, course_id: UUID, org_id: UUID) -> None:
    delete_row(db, get_course(db, course_id, org_id))


def set_published(db: Session, course_id: UUID, org_id: UUID, published: bool) -> Course:
    course = get_course(db, course_id, org_id)
    return update_row(db, course, {"is_published": published})


# =============================================================================
# Modules
# =============================================================================

def get_module(db: Session, course_id: UUID, module_id: UUID, org_id: UUID) -> CourseModule:
    course = get_course(db, course_id, org_id)
    module = next((m for m in course.modules if m.id == module_id), None)
    if not module:
        raise NotFoundError("Course module", module_id)
    return module


def add_module(db: Session, course_id: UUID, org_id: UUID, data: ModuleCreate) -> CourseModule:
    course = get_course(db, course_id, org_id)
    module = CourseModule(title=data.title, description=data.description)
    course.modules = _insert_at(course.modules, module, data.order_index)
    update_row(db, course, {})
    return module


def update_module(db: Session, course_id: UUID, module_id: UUID, org_id: UUID, data: ModuleUpdate) -> CourseModule:
    module = get_module(db, course_id, module_id, org_id)
    return update_row(db, module, data.model_dump(exclude_unset=True))


def delete_module(db: Session, course_id: UUID, module_id: UUID, org_id: UUID) -> None:
    course = get_course(db, course_id, org_id)
    module = next((m for m in course.modules if m.id == module_id), None)
    if not module:
        raise NotFoundError("Course module", module_id)
    course.modules.remove(module)
    _renumber(course.modules)
    update_row(db, course, {})


def reorder_modules(db: Session, course_id: UUID, org_id: UUID, module_ids: list[UUID]) -> Course:
    course = get_course(db, course_id, org_id)
    by_id = {m.id: m for m in course.modules}
    _check_complete(module_ids, set(by_id), "module of the course")
    _renumber([by_id[module_id] for module_id in module_ids])
    update_row(db, course, {})
    db.refresh(course)
    return course


# =============================================================================
# Lessons
# =============================================================================

def get_lesson(
    db: Session,
    course_id: UUID,
    module_id: UUID,
    lesson_id: UUID,
    org_id: UUID,
) -> CourseLesson:
    module = get_module(db, course_id, module_id, org_id)
    lesson = next((le for le in module.lessons if le.id == lesson_id), None)
    if not lesson:
        raise NotFoundError("Course lesson", lesson_id)
    return lesson


def add_lesson(db: Session, course_id: UUID, module_id: UUID, org_id: UUID, data: LessonCreate) -> CourseLesson:
    module = get_module(db, course_id, module_id, org_id)
    lesson = CourseLesson(title=data.title, content=data.content)
    module.lessons = _insert_at(module.lessons, lesson, data.order_index)
    update_row(db, module, {})
    return lesson


def update_lesson(
    db: Session,
    course_id: UUID,
    module_id: UUID,
    lesson_id: UUID,
    org_id: UUID,
    data: LessonUpdate,
) -> CourseLesson:
    lesson = get_lesson(db, course_id, module_id, lesson_id, org_id)
    return update_row(db, lesson, data.model_dump(exclude_unset=True))


def delete_lesson(db: Session, course_id: UUID, module_id: UUID, lesson_id: UUID, org_id: UUID) -> None:
    module = get_module(db, course_id, module_id, org_id)
    lesson = next((le for le in module.lessons if le.id == lesson_id), None)
    if not lesson:
        raise NotFoundError("Course lesson", lesson_id)
    module.lessons.remove(lesson)
    _renumber(module.lessons)
    update_row(db, module, {})


def reorder_lessons(
    db: Session,
    course_id: UUID,
    module_id: UUID,
    org_id: UUID,
    lesson_ids: list[UUID],
) -> CourseModule:
    module = get_module(db, course_id, module_id, org_id)
    by_id = {le.id: le for le in module.lessons}
    _check_complete(lesson_ids, set(by_id), "lesson of the module")
    _renumber([by_id[lesson_id] for lesson_id in lesson_ids])
    update_row(db, module, {})
    db.refresh(module)
    return module
