from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from .offset_chain import OffsetBuilderChain


@dataclass
class LimitBuilder:
    count: Optional[int] = None

    def limit(self, count: int) -> LimitBuilder:
        """Cap the number of returned rows."""
        return replace(self, count=count)

    def build(self) -> str:
        return "" if self.count is None else f"LIMIT {self.count}"


@dataclass
class OffsetBuilder(OffsetBuilderChain):
    limits: LimitBuilder = field(default_factory=LimitBuilder, metadata={"chaingen": "-build,*"})
    skip: Optional[int] = None

    def offset(self, skip: int) -> OffsetBuilder:
        """Skip the first rows of the result."""
        return replace(self, skip=skip)

    def build(self) -> str:
        parts = [self.limits.build()]
        if self.skip is not None:
            parts.append(f"OFFSET {self.skip}")
        return " ".join(part for part in parts if part)
