"""Row-level data access helpers shared by the services.

Every write goes through ``db_errors()`` so driver exceptions surface as the
application error taxonomy instead of leaking SQLSTATE details.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from sqlalchemy import delete, inspect, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
from sqlalchemy.sql import Executable

from crm.core.exceptions import CRMError, DatabaseError, ValidationError
from crm.db.types import utcnow
from crm.utils.pagination import PaginationParams, paginate_query, paginated

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
UNDEFINED_TABLE = "42P01"

SORT_DIRECTIONS = {"ASC", "DESC"}


# =============================================================================
# Error translation
# =============================================================================

def _sqlstate(exc: DBAPIError) -> str | None:
    orig = getattr(exc, "orig", None)
    # psycopg 3 exposes .sqlstate, psycopg2 exposes .pgcode
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def translate_db_error(exc: DBAPIError) -> CRMError:
    """Map a driver error to the application taxonomy. Never retries."""
    code = _sqlstate(exc)
    text = str(getattr(exc, "orig", exc)).lower()

    if code == UNIQUE_VIOLATION or "unique constraint failed" in text:
        return ValidationError("A record with this information already exists")
    if code == FOREIGN_KEY_VIOLATION or "foreign key constraint failed" in text:
        return ValidationError("Referenced record does not exist")
    if code == UNDEFINED_TABLE or "no such table" in text:
        return DatabaseError("Database schema issue: Table does not exist", code=code)
    return DatabaseError("Database operation failed", code=code)


@contextmanager
def db_errors() -> Iterator[None]:
    """Translate driver errors raised inside the block."""
    try:
        yield
    except DBAPIError as e:
        error = translate_db_error(e)
        logger.error("Database error (%s): %s", _sqlstate(e) or "unknown", e.orig)
        raise error from e


# =============================================================================
# Row helpers
# =============================================================================

def to_dict(instance: Any) -> dict[str, Any]:
    """Column values of an ORM instance keyed by attribute name."""
    mapper = inspect(instance).mapper
    return {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}


def _row_to_dict(row) -> dict[str, Any]:
    if len(row) == 1 and hasattr(row[0], "__table__"):
        return to_dict(row[0])
    return dict(row._mapping)


def get_row(db: Session, stmt: Executable) -> dict[str, Any] | None:
    """First row of ``stmt`` as a dict, or None."""
    with db_errors():
        row = db.execute(stmt).first()
    return _row_to_dict(row) if row is not None else None


def get_rows(db: Session, stmt: Executable) -> list[dict[str, Any]]:
    """All rows of ``stmt`` as dicts. Ordering is whatever ``stmt`` specifies."""
    with db_errors():
        rows = db.execute(stmt).all()
    return [_row_to_dict(row) for row in rows]


def insert_row(db: Session, model: type, values: Mapping[str, Any]):
    """Insert one row and flush so generated keys and defaults are populated."""
    instance = model(**values)
    with db_errors():
        db.add(instance)
        db.flush()
    return instance


def update_row(db: Session, instance: Any, values: Mapping[str, Any]):
    """Apply a partial update and stamp ``updated_at``."""
    for field, value in values.items():
        setattr(instance, field, value)
    if hasattr(instance, "updated_at"):
        instance.updated_at = utcnow()
    with db_errors():
        db.flush()
    return instance


def delete_row(db: Session, instance: Any) -> None:
    with db_errors():
        db.delete(instance)
        db.flush()


def update_where(db: Session, model: type, values: Mapping[str, Any], *criteria) -> int:
    """
    Bulk UPDATE of the rows matching ``criteria``; returns the affected count.

    Criteria that already exclude rows in the target state make the update a
    no-op, which callers use to detect whether anything changed.
    """
    values = dict(values)
    if "updated_at" in inspect(model).columns:
        values["updated_at"] = utcnow()
    stmt = update(model).where(*criteria).values(**values)
    with db_errors():
        result = db.execute(stmt)
    return result.rowcount


def delete_where(db: Session, model: type, *criteria) -> int:
    """Bulk DELETE of the rows matching ``criteria``; returns the deleted count."""
    with db_errors():
        result = db.execute(delete(model).where(*criteria))
    return result.rowcount


# =============================================================================
# Pagination
# =============================================================================

def paginate(
    db: Session,
    model: type,
    filters: Mapping[str, Any] | None = None,
    *,
    page: int = 1,
    limit: int = 20,
    order_by: str = "created_at",
    order: str = "DESC",
    query=None,
) -> dict[str, Any]:
    """
    Filtered, ordered page of ``model`` rows.

    ``filters`` maps column names to values; ``None`` matches ``IS NULL``.
    ``query`` may be a pre-filtered ORM query (e.g. a search) to start from.

    Returns:
        {"data": [...], "pagination": {"page", "limit", "total", "pages"}}
    """
    columns = inspect(model).columns
    direction = order.upper()
    if direction not in SORT_DIRECTIONS:
        raise ValidationError(f"Invalid sort direction: {order}", field="order")
    if order_by not in columns:
        raise ValidationError(f"Invalid sort column: {order_by}", field="order_by")

    q = query if query is not None else db.query(model)
    for name, value in (filters or {}).items():
        if name not in columns:
            raise ValidationError(f"Invalid filter: {name}", field=name)
        column = columns[name]
        q = q.filter(column.is_(None) if value is None else column == value)

    sort_column = columns[order_by]
    # id as tiebreaker keeps pages stable when sort values collide
    q = q.order_by(
        sort_column.asc() if direction == "ASC" else sort_column.desc(),
        columns["id"].asc(),
    )

    pagination = PaginationParams(page=max(page, 1), limit=max(limit, 1))
    with db_errors():
        items, total = paginate_query(q, pagination)
    return paginated(items, total, pagination)
