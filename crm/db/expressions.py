"""Dialect-aware SQL expressions used by the analytics queries.

PostgreSQL is the production database; SQLite renditions exist so the same
queries run in the test suite. Only enum-constrained format strings are ever
rendered into SQL text.
"""

from sqlalchemy import Float, Integer, Numeric, String, cast, func
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.expression import ColumnElement, FunctionElement

from crm.db.enums import Period


PG_PERIOD_FORMATS = {
    Period.DAY: "YYYY-MM-DD",
    Period.WEEK: "IYYY-IW",
    Period.MONTH: "YYYY-MM",
    Period.YEAR: "YYYY",
}

# SQLite has no ISO week-year; %W is the closest portable approximation
SQLITE_PERIOD_FORMATS = {
    Period.DAY: "%Y-%m-%d",
    Period.WEEK: "%Y-%W",
    Period.MONTH: "%Y-%m",
    Period.YEAR: "%Y",
}


class period_label(FunctionElement):
    """Render a timestamp as a period label such as ``2024-03``."""

    type = String()
    name = "period_label"
    # The period is a Python attribute, not a clause, so the statement must not be cached
    inherit_cache = False

    def __init__(self, expr, period: Period):
        self.period = Period(period)
        super().__init__(expr)


@compiles(period_label)
def _period_label_default(element, compiler, **kw):
    (expr,) = list(element.clauses)
    fmt = PG_PERIOD_FORMATS[element.period]
    return f"to_char({compiler.process(expr, **kw)}, '{fmt}')"


@compiles(period_label, "sqlite")
def _period_label_sqlite(element, compiler, **kw):
    (expr,) = list(element.clauses)
    fmt = SQLITE_PERIOD_FORMATS[element.period]
    return f"strftime('{fmt}', {compiler.process(expr, **kw)})"


class seconds_between(FunctionElement):
    """Elapsed seconds from ``earlier`` to ``later``."""

    type = Float()
    name = "seconds_between"
    inherit_cache = True


@compiles(seconds_between)
def _seconds_between_default(element, compiler, **kw):
    later, earlier = list(element.clauses)
    return "EXTRACT(EPOCH FROM (%s - %s))" % (
        compiler.process(later, **kw),
        compiler.process(earlier, **kw),
    )


@compiles(seconds_between, "sqlite")
def _seconds_between_sqlite(element, compiler, **kw):
    later, earlier = list(element.clauses)
    return "((julianday(%s) - julianday(%s)) * 86400.0)" % (
        compiler.process(later, **kw),
        compiler.process(earlier, **kw),
    )


class hour_of(FunctionElement):
    """Hour of day (0-23) of a timestamp."""

    type = Integer()
    name = "hour_of"
    inherit_cache = True


@compiles(hour_of)
def _hour_of_default(element, compiler, **kw):
    (expr,) = list(element.clauses)
    return f"CAST(EXTRACT(HOUR FROM {compiler.process(expr, **kw)}) AS INTEGER)"


@compiles(hour_of, "sqlite")
def _hour_of_sqlite(element, compiler, **kw):
    (expr,) = list(element.clauses)
    return f"CAST(strftime('%H', {compiler.process(expr, **kw)}) AS INTEGER)"


# =============================================================================
# Numeric helpers
# =============================================================================

def days_between(later, earlier) -> ColumnElement:
    return seconds_between(later, earlier) / 86400.0


def rounded(expr, places: int) -> ColumnElement:
    """ROUND(expr, places) computed as NUMERIC so PostgreSQL accepts float input."""
    return func.round(cast(expr, Numeric), places)


def percent(part, whole, places: int = 1) -> ColumnElement:
    """ROUND(part * 100 / NULLIF(whole, 0), places). NULL when ``whole`` is 0."""
    return rounded(part * 100.0 / func.nullif(whole, 0), places)


def ratio(numerator, denominator, places: int = 2) -> ColumnElement:
    """ROUND(numerator / NULLIF(denominator, 0), places). NULL when the denominator is 0."""
    return rounded(numerator * 1.0 / func.nullif(denominator, 0), places)
