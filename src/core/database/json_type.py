"""JSON document column: JSONB on PostgreSQL, generic JSON on other dialects.

Event metadata and summary device breakdowns are stored as documents. SQLite
support exists for the unit test engine.
"""

import logging
from typing import Any

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator

logger = logging.getLogger(__name__)


class JSONType(TypeDecorator):
    """Object or array column; Python None is SQL NULL, never JSON null."""

    impl = JSON(none_as_null=True)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB(none_as_null=True))
        return dialect.type_descriptor(JSON(none_as_null=True))

    def process_bind_param(self, value: Any, dialect: Dialect) -> dict | list | None:
        if value is None or isinstance(value, dict | list):
            return value

        # Scalars would round-trip as something other than a document
        logger.warning(f"JSONType got {type(value).__name__}; storing an empty object instead")
        return {}

    def process_result_value(self, value: Any, dialect: Dialect) -> dict | list | None:
        if value is None or isinstance(value, dict | list):
            return value

        logger.error(f"Unexpected type in JSON column: {type(value).__name__} ({repr(value)[:100]})")
        raise TypeError(f"Unexpected type in JSON column: {type(value).__name__}")
