"""Discovery of the component graph reachable from root types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Sequence

from .errors import DiscoveryError
from .introspection.base import Introspector, OperationInfo
from .logging import get_logger
from .models import Component, CompositionEdge, Operation, TypeRef
from .modifiers import Accessor, parse_type_annotation


@dataclass
class TypeGraph:
    """Arena of components keyed by identity.

    ``order`` lists every component after all of its children, which is the
    order in which surfaces must be resolved.
    """

    roots: List[Component] = field(default_factory=list)
    components: Dict[str, Component] = field(default_factory=dict)
    order: List[Component] = field(default_factory=list)

    def __iter__(self) -> Iterator[Component]:
        return iter(self.order)

    def __len__(self) -> int:
        return len(self.components)

    def get(self, name: str) -> Component:
        """Return the component whose key or class name is ``name``."""
        if name in self.components:
            return self.components[name]
        for component in self.order:
            if component.name == name:
                return component
        raise KeyError(name)


class TypeGraphBuilder:
    """Builds a :class:`TypeGraph` by walking composition edges depth first."""

    def __init__(self, introspector: Introspector) -> None:
        self.introspector = introspector
        self.logger = get_logger("graph")

    def build(self, roots: Sequence[TypeRef]) -> TypeGraph:
        graph = TypeGraph()
        for ref in roots:
            component = self._visit(ref, graph, depth=0)
            if component not in graph.roots:
                graph.roots.append(component)
        self.logger.debug(
            "Discovered %d components from %d roots", len(graph.components), len(graph.roots)
        )
        return graph

    def _visit(self, ref: TypeRef, graph: TypeGraph, depth: int) -> Component:
        existing = graph.components.get(ref.key)
        if existing is not None:
            # Shared child, or a component still under construction.
            return existing
        info = self.introspector.describe(ref)
        component = Component(
            key=ref.key,
            type=info.type,
            path=info.path,
            annotations=list(info.annotations),
            depth=depth,
        )
        graph.components[ref.key] = component
        component.operations = [self._operation(component, item) for item in info.operations]
        self.logger.debug("Discovered component %s (depth %d)", component.key, depth)

        for edge in info.edges:
            child = self._child(edge.child, graph, depth, component, edge.name)
            component.edges.append(
                CompositionEdge(name=edge.name, child=child, annotation=edge.annotation)
            )
        for accessor in self._accessors(component):
            method = component.operation(accessor.method)
            if method is None:
                raise DiscoveryError(
                    f"accessor {accessor.method!r} declared on {component.name} is not a method"
                )
            if len(method.results) != 1:
                raise DiscoveryError(
                    f"accessor {component.name}.{accessor.method} must return a single component"
                )
            child = self._child(method.results[0], graph, depth, component, accessor.method)
            component.edges.append(
                CompositionEdge(
                    name=accessor.method,
                    child=child,
                    annotation=accessor.annotation,
                    accessor=True,
                )
            )
        graph.order.append(component)
        return component

    def _child(
        self, ref: TypeRef, graph: TypeGraph, depth: int, parent: Component, via: str
    ) -> Component:
        try:
            return self._visit(ref, graph, depth + 1)
        except DiscoveryError as exc:
            raise DiscoveryError(f"error creating component for {parent.name}.{via}: {exc}") from exc

    def _operation(self, component: Component, info: OperationInfo) -> Operation:
        doc = self.introspector.documentation(info.position) if info.position else None
        return Operation(
            name=info.name,
            receiver=component.type,
            params=list(info.params),
            results=list(info.results),
            origin=component,
            exported=info.exported,
            position=info.position,
            doc=doc,
        )

    @staticmethod
    def _accessors(component: Component) -> List[Accessor]:
        accessors = []
        for annotation in component.annotations:
            parsed = parse_type_annotation(annotation, owner=component.name)
            if isinstance(parsed, Accessor):
                accessors.append(parsed)
        return accessors


__all__ = ["TypeGraph", "TypeGraphBuilder"]
