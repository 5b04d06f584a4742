"""Contract between the engine and a source introspection frontend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from ..models import Param, SourcePosition, TypeRef


@dataclass
class OperationInfo:
    """Signature of a method as declared in source."""

    name: str
    params: List[Param]
    results: List[TypeRef]
    exported: bool
    position: Optional[SourcePosition] = None


@dataclass
class EdgeInfo:
    """A stored field whose type is (or is declared to be) a component."""

    name: str
    child: TypeRef
    annotation: str = ""


@dataclass
class ComponentInfo:
    """Everything the engine needs to know about one component type."""

    type: TypeRef
    path: Path
    operations: List[OperationInfo] = field(default_factory=list)
    edges: List[EdgeInfo] = field(default_factory=list)
    annotations: List[str] = field(default_factory=list)


class Introspector(ABC):
    """Supplies component metadata extracted from source."""

    @abstractmethod
    def locate(self, names: Sequence[str]) -> List[TypeRef]:
        """Return root component types for ``names`` (all composed types when empty).

        Raises :class:`~chaingen.errors.DiscoveryError` when a name matches nothing.
        """

    @abstractmethod
    def describe(self, ref: TypeRef) -> ComponentInfo:
        """Return metadata for ``ref`` or raise :class:`~chaingen.errors.DiscoveryError`."""

    @abstractmethod
    def documentation(self, position: SourcePosition) -> Optional[str]:
        """Return the docstring of the declaration at ``position``, if any."""
