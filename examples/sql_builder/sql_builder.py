"""Builds WHERE/LIMIT/OFFSET clauses through one fluent object."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Tuple

from .offset import OffsetBuilder
from .sql_builder_chain import SQLBuilderChain


@dataclass
class WhereBuilder:
    conditions: Tuple[str, ...] = ()

    def where(self, condition: str) -> WhereBuilder:
        """Add a condition, joined to earlier ones with AND."""
        return replace(self, conditions=(*self.conditions, condition))

    def build(self) -> str:
        if not self.conditions:
            return ""
        return "WHERE " + " AND ".join(self.conditions)


@dataclass
class SQLBuilder(SQLBuilderChain):
    """Fluent builder: ``SQLBuilder().where("id = 5").limit(10).build()``."""

    w: WhereBuilder = field(
        default_factory=WhereBuilder,
        metadata={"chaingen": "-build,*=where_*,where_*=*,export(where)"},
    )
    o: OffsetBuilder = field(
        default_factory=OffsetBuilder,
        metadata={"chaingen": "-build,*=*_offset,*_offset=*"},
    )

    def build(self) -> str:
        parts = [self.w.build(), self.o.build()]
        return " ".join(part for part in parts if part)
