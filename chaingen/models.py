"""Core data models shared across chaingen components."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

BUILTINS = "builtins"

# Operator-like pseudo names produced for annotation syntax that is not a plain
# (possibly subscripted) name.
UNION = "|"
BRACKETS = "[]"
ELLIPSIS = "..."

_SEQUENCE_ORIGINS = {
    (BUILTINS, "list"),
    ("typing", "List"),
    ("typing", "Sequence"),
    ("collections.abc", "Sequence"),
}


@dataclass(frozen=True)
class TypeRef:
    """Opaque type identifier; two types are the same iff their keys are equal."""

    name: str
    module: Optional[str] = None
    args: Tuple["TypeRef", ...] = ()

    @property
    def key(self) -> str:
        if self.name == UNION:
            return " | ".join(arg.key for arg in self.args)
        if self.name == BRACKETS:
            return "[" + ", ".join(arg.key for arg in self.args) + "]"
        base = f"{self.module}.{self.name}" if self.module else self.name
        if self.args:
            return base + "[" + ", ".join(arg.key for arg in self.args) + "]"
        return base

    def is_sequence(self) -> bool:
        return (self.module, self.name) in _SEQUENCE_ORIGINS and len(self.args) == 1

    def with_args(self, *args: "TypeRef") -> "TypeRef":
        return replace(self, args=tuple(args))

    @classmethod
    def list_of(cls, item: "TypeRef") -> "TypeRef":
        return cls("list", BUILTINS, (item,))

    def __str__(self) -> str:
        return self.key


ANY = TypeRef("Any", "typing")


class ParamKind(str, Enum):
    """How a parameter is declared and therefore how it is forwarded."""

    POSITIONAL_ONLY = "positional_only"
    POSITIONAL = "positional"
    VAR_POSITIONAL = "var_positional"
    KEYWORD_ONLY = "keyword_only"
    VAR_KEYWORD = "var_keyword"


@dataclass(frozen=True)
class Param:
    """A single operation parameter."""

    name: str
    type: TypeRef
    kind: ParamKind = ParamKind.POSITIONAL
    default: Optional[str] = None

    @property
    def variadic(self) -> bool:
        return self.kind is ParamKind.VAR_POSITIONAL

    def sequence_element(self) -> Optional[TypeRef]:
        """Return ``T`` when the parameter accepts a sequence of ``T``."""
        if self.variadic:
            return self.type
        if self.type.is_sequence():
            return self.type.args[0]
        return None


@dataclass(frozen=True)
class SourcePosition:
    """Location of a declaration, used for documentation lookup."""

    path: Path
    line: int

    def __str__(self) -> str:
        return f"{self.path}:{self.line}"


class Classification(str, Enum):
    PASS_THROUGH = "pass_through"
    TERMINAL = "terminal"
    ADAPTER = "adapter"


@dataclass(frozen=True)
class ParamAdapter:
    """Projection applied to one argument before it is forwarded.

    ``projection`` is the registered unwrap operation. ``adapter`` is the
    synthesized elementwise operation for sequence parameters and is ``None``
    for a scalar parameter, which is projected directly.
    """

    projection: "Operation"
    adapter: Optional["Operation"] = None


@dataclass(eq=False)
class Operation:
    """A method of a component, either declared in source or generated."""

    name: str
    receiver: TypeRef
    params: List[Param]
    results: List[TypeRef]
    origin: "Component" = field(repr=False)
    exported: bool = True
    alias: str = ""
    position: Optional[SourcePosition] = None
    doc: Optional[str] = field(default=None, repr=False)
    # Name the operation is reachable under on the edge's child.
    target: str = ""
    edge: Optional["CompositionEdge"] = field(default=None, repr=False)
    wrapper: Optional["Operation"] = field(default=None, repr=False)
    forwarded_results: List[TypeRef] = field(default_factory=list, repr=False)
    pointer: bool = False
    prefixes: List[str] = field(default_factory=list)
    postfixes: List[str] = field(default_factory=list)
    package_export: bool = False
    selected: bool = False
    adapters: Dict[int, ParamAdapter] = field(default_factory=dict, repr=False)
    projection: Optional["Operation"] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.alias:
            self.alias = self.name
        if not self.target:
            self.target = self.alias

    @property
    def variadic(self) -> bool:
        return any(param.variadic for param in self.params)

    @property
    def classification(self) -> Classification:
        if self.projection is not None:
            return Classification.ADAPTER
        if self.wrapper is None and len(self.results) == 1 and self.results[0] == self.receiver:
            return Classification.PASS_THROUGH
        return Classification.TERMINAL

    @property
    def is_pass_through(self) -> bool:
        return self.classification is Classification.PASS_THROUGH

    def fork(self, edge: "CompositionEdge") -> "Operation":
        """Copy the operation into a parent's pool with per-edge decorations reset."""
        return replace(
            self,
            params=list(self.params),
            results=list(self.results),
            target=self.alias,
            edge=edge,
            wrapper=None,
            forwarded_results=[],
            pointer=False,
            prefixes=[],
            postfixes=[],
            package_export=False,
            selected=False,
            adapters={},
        )

    def describe(self) -> str:
        label = f"{self.origin.name}.{self.name}"
        if self.edge is not None:
            label += f" (via {self.edge.name})"
        return label


@dataclass(eq=False)
class CompositionEdge:
    """A parent's reference to a child component through a field or accessor."""

    name: str
    child: "Component" = field(repr=False)
    annotation: str = ""
    accessor: bool = False


@dataclass(eq=False)
class Component:
    """A class taking part in composition, memoized by ``key``."""

    key: str
    type: TypeRef
    path: Path
    operations: List[Operation] = field(default_factory=list, repr=False)
    edges: List[CompositionEdge] = field(default_factory=list, repr=False)
    annotations: List[str] = field(default_factory=list)
    surface: List[Operation] = field(default_factory=list, repr=False)
    functions: List[Operation] = field(default_factory=list, repr=False)
    depth: int = 0
    resolved: bool = False

    @property
    def name(self) -> str:
        return self.type.name

    @property
    def module(self) -> str:
        return self.type.module or ""

    def operation(self, name: str) -> Optional[Operation]:
        for operation in self.operations:
            if operation.name == name:
                return operation
        return None


__all__ = [
    "ANY",
    "BUILTINS",
    "Classification",
    "Component",
    "CompositionEdge",
    "Operation",
    "Param",
    "ParamAdapter",
    "ParamKind",
    "SourcePosition",
    "TypeRef",
]
