"""
Dialect-aware column types.

OptionList stores a question's answer options as JSONB on PostgreSQL and
plain JSON elsewhere, and refuses anything that is not exactly four strings.
"""
from typing import Any, List, Optional

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator

OPTION_COUNT = 4


class OptionList(TypeDecorator):
    """Ordered list of exactly four answer options."""
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value: Optional[List[Any]], dialect: Dialect):
        if value is None:
            return None
        options = list(value)
        if len(options) != OPTION_COUNT:
            raise ValueError(f"Expected {OPTION_COUNT} options, got {len(options)}")
        if not all(isinstance(option, str) for option in options):
            raise ValueError("Options must be strings")
        return options

    def process_result_value(self, value: Optional[List[Any]], dialect: Dialect):
        if value is None:
            return None
        return [str(option) for option in value]
