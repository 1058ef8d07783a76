"""
Standard type definitions for database models.

Provides consistent types for on-chain integers and event payloads.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Numeric, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator


class Uint256(TypeDecorator):
    """
    Unsigned 256-bit integer column.

    Stored as NUMERIC(78, 0) on PostgreSQL. SQLite has no exact type that
    holds 78 digits, so values are stored there as decimal strings.
    Python side is always int.
    """

    impl = Numeric(78, 0)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(78))
        return dialect.type_descriptor(Numeric(78, 0, asdecimal=True))

    def process_bind_param(self, value: Any, dialect) -> Any:
        if value is None:
            return None
        value = int(value)
        if value < 0:
            raise ValueError(f"Uint256 column got negative value {value}")
        if dialect.name == "sqlite":
            return str(value)
        return Decimal(value)

    def process_result_value(self, value: Any, dialect) -> int | None:
        if value is None:
            return None
        return int(value)


# Amounts in token base units (wei-style), bucket ids, limits
UintType = Uint256()

# Decoded event arguments; JSONB on PostgreSQL
PayloadType = JSON().with_variant(JSONB(), "postgresql")
