import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Numeric, Uuid
from sqlalchemy.orm import DeclarativeBase

from crm.db.types import JSONType


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    type_annotation_map = {
        datetime: DateTime(timezone=True),
        uuid.UUID: Uuid(),
        Decimal: Numeric(12, 2),
        dict[str, Any]: JSONType,
        list[dict[str, Any]]: JSONType,
    }
