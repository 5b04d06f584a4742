"""Per-run resolution state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from .models import Operation, TypeRef


class UnwrapRegistry:
    """Projection operations registered by ``unwrap=...``, keyed by result type.

    A registry normally lives for one generation run. Passing the same instance
    to several runs shares registrations between them.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Operation] = {}

    def register(self, operation: Operation) -> None:
        self._entries[operation.results[0].key] = operation

    def lookup(self, ref: TypeRef) -> Optional[Operation]:
        return self._entries.get(ref.key)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, ref: object) -> bool:
        return isinstance(ref, TypeRef) and ref.key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class ResolutionContext:
    """State shared by every component resolved in one run."""

    strict: bool = True
    unwraps: UnwrapRegistry = field(default_factory=UnwrapRegistry)


__all__ = ["ResolutionContext", "UnwrapRegistry"]
