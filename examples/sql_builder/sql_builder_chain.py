# Code generated by chaingen. DO NOT EDIT.
# Source: sql_builder.py

from __future__ import annotations

import copy as _copy
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import sql_builder.sql_builder as sql_builder


class SQLBuilderChain:
    """Operations composed onto SQLBuilder."""

    def where(self, condition: str) -> sql_builder.SQLBuilder:
        """Add a condition, joined to earlier ones with AND."""
        _clone = _copy.copy(self)
        _clone.w = self.w.where(condition)
        return _clone

    def offset(self, skip: int) -> sql_builder.SQLBuilder:
        """Skip the first rows of the result."""
        _clone = _copy.copy(self)
        _clone.o = self.o.offset(skip)
        return _clone

    def limit(self, count: int) -> sql_builder.SQLBuilder:
        """Cap the number of returned rows."""
        _clone = _copy.copy(self)
        _clone.o = self.o.limit(count)
        return _clone


def where(condition: str) -> sql_builder.SQLBuilder:
    """Add a condition, joined to earlier ones with AND."""
    from sql_builder.sql_builder import SQLBuilder

    return SQLBuilder().where(condition)
