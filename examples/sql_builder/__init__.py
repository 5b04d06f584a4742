"""SQL clause builder assembled from independent builders."""

from .offset import LimitBuilder, OffsetBuilder
from .sql_builder import SQLBuilder, WhereBuilder

__all__ = ["LimitBuilder", "OffsetBuilder", "SQLBuilder", "WhereBuilder"]
