"""Computes the operation surface each component exposes.

For every composition edge the child's operations (declared and generated) are
forked into a pool keyed by alias. The edge's modifiers are applied to the pool
in order, then the selected operations are merged into the parent's surface.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Set

from .context import ResolutionContext, UnwrapRegistry
from .errors import NamingConflictError
from .graph import TypeGraph
from .glob import Pattern
from .logging import get_logger
from .models import Component, CompositionEdge, Operation, TypeRef
from .modifiers import (
    EXCLUDE_MARKER,
    Exclude,
    Export,
    Modifier,
    Pointer,
    Postfix,
    Prefix,
    PrivacyToggle,
    RegisterUnwrap,
    Rename,
    SelectAll,
    Wrap,
    parse_annotation,
    parse_type_annotation,
)
from .transform import CallSiteTransform

Pool = Dict[str, Operation]


@dataclass
class EdgeState:
    """Mutable state while one edge's modifier chain is applied."""

    owner: Component
    registry: UnwrapRegistry
    include_private: bool = False

    def selectable(self, operation: Operation) -> bool:
        return operation.exported or self.include_private


def apply_modifier(pool: Pool, modifier: Modifier, state: EdgeState) -> Pool:
    """Apply one modifier to ``pool`` and return the resulting pool."""
    handler = _HANDLERS[type(modifier)]
    return handler(pool, modifier, state)


def _matching(pool: Pool, pattern: Pattern) -> List[Operation]:
    return [op for op in pool.values() if pattern.matches(op.alias, op.receiver.name)]


def _select_all(pool: Pool, modifier: SelectAll, state: EdgeState) -> Pool:
    for operation in pool.values():
        operation.selected = state.selectable(operation)
    return pool


def _toggle_privacy(pool: Pool, modifier: PrivacyToggle, state: EdgeState) -> Pool:
    state.include_private = True
    return pool


def _exclude(pool: Pool, modifier: Exclude, state: EdgeState) -> Pool:
    pattern = modifier.pattern
    return {
        alias: operation
        for alias, operation in pool.items()
        if not pattern.matches(alias, operation.receiver.name)
    }


def _rename(pool: Pool, modifier: Rename, state: EdgeState) -> Pool:
    renamed: Pool = {}
    for alias, operation in pool.items():
        if modifier.left.matches(alias, operation.receiver.name):
            if modifier.exclude:
                continue
            operation.alias = modifier.left.rename(alias, modifier.right)
            operation.selected = state.selectable(operation)
        renamed[operation.alias] = operation
    return renamed


def _wrap(pool: Pool, modifier: Wrap, state: EdgeState) -> Pool:
    for operation in _matching(pool, modifier.pattern):
        child_results = operation.forwarded_results if operation.wrapper is not None else operation.results
        for name in modifier.wrappers:
            wrapper = state.owner.operation(name)
            if wrapper is None or not _wrapper_accepts(wrapper, child_results):
                continue
            operation.forwarded_results = list(child_results)
            operation.wrapper = wrapper
            operation.results = list(wrapper.results)
            operation.selected = state.selectable(operation)
            break
    return pool


def _wrapper_accepts(wrapper: Operation, results: List[TypeRef]) -> bool:
    if wrapper.variadic:
        return True
    if len(wrapper.params) != len(results):
        return False
    return all(param.type == result for param, result in zip(wrapper.params, results))


def _register_unwrap(pool: Pool, modifier: RegisterUnwrap, state: EdgeState) -> Pool:
    logger = get_logger("resolver")
    for name in modifier.names:
        operation = state.owner.operation(name)
        if operation is None:
            logger.debug("unwrap: %s has no operation %s", state.owner.name, name)
            continue
        if len(operation.results) != 1 or operation.params:
            logger.debug("unwrap: %s.%s is not a single-result projection", state.owner.name, name)
            continue
        state.registry.register(operation)
    return pool


def _export(pool: Pool, modifier: Export, state: EdgeState) -> Pool:
    for operation in _matching(pool, modifier.pattern):
        operation.package_export = True
    return pool


def _pointer(pool: Pool, modifier: Pointer, state: EdgeState) -> Pool:
    for operation in _matching(pool, modifier.pattern):
        operation.pointer = True
    return pool


def _prefix(pool: Pool, modifier: Prefix, state: EdgeState) -> Pool:
    for operation in _matching(pool, modifier.pattern):
        operation.prefixes.append(modifier.code)
    return pool


def _postfix(pool: Pool, modifier: Postfix, state: EdgeState) -> Pool:
    for operation in _matching(pool, modifier.pattern):
        operation.postfixes.append(modifier.code)
    return pool


_HANDLERS: Dict[type, Callable[[Pool, Modifier, EdgeState], Pool]] = {
    SelectAll: _select_all,  # type: ignore[dict-item]
    PrivacyToggle: _toggle_privacy,  # type: ignore[dict-item]
    Exclude: _exclude,  # type: ignore[dict-item]
    Rename: _rename,  # type: ignore[dict-item]
    Wrap: _wrap,  # type: ignore[dict-item]
    RegisterUnwrap: _register_unwrap,  # type: ignore[dict-item]
    Export: _export,  # type: ignore[dict-item]
    Pointer: _pointer,  # type: ignore[dict-item]
    Prefix: _prefix,  # type: ignore[dict-item]
    Postfix: _postfix,  # type: ignore[dict-item]
}


class SurfaceResolver:
    """Resolves each component exactly once, children before parents."""

    def __init__(self, context: ResolutionContext | None = None) -> None:
        self.context = context or ResolutionContext()
        self.transform = CallSiteTransform(self.context)
        self.logger = get_logger("resolver")
        self._resolving: Set[str] = set()

    def resolve_graph(self, graph: TypeGraph) -> TypeGraph:
        for component in graph.order:
            self.resolve(component)
        return graph

    def resolve(self, component: Component) -> None:
        if component.resolved or component.key in self._resolving:
            return
        self._resolving.add(component.key)
        try:
            taken: Dict[str, Operation] = {operation.alias: operation for operation in component.operations}
            for edge in component.edges:
                self.resolve(edge.child)
                if edge.annotation.strip() == EXCLUDE_MARKER:
                    continue
                pool = self._pool(edge)
                state = EdgeState(owner=component, registry=self.context.unwraps)
                for modifier in parse_annotation(edge.annotation, edge=f"{component.name}.{edge.name}"):
                    pool = apply_modifier(pool, modifier, state)
                self._merge(component, edge, pool, taken)
            self._export_own(component)
            self.transform.apply(component)
        finally:
            self._resolving.discard(component.key)
        component.resolved = True
        self.logger.debug(
            "Resolved %s: %d generated operations, %d functions",
            component.name,
            len(component.surface),
            len(component.functions),
        )

    @staticmethod
    def _pool(edge: CompositionEdge) -> Pool:
        pool: Pool = {}
        for operation in [*edge.child.operations, *edge.child.surface]:
            forked = operation.fork(edge)
            pool[forked.alias] = forked
        return pool

    def _merge(
        self,
        component: Component,
        edge: CompositionEdge,
        pool: Pool,
        taken: Dict[str, Operation],
    ) -> None:
        for operation in pool.values():
            if not operation.selected:
                continue
            existing = taken.get(operation.alias)
            if existing is not None:
                if self.context.strict:
                    raise NamingConflictError(component.name, operation.alias, existing, operation)
                self.logger.debug(
                    "Skipping %s on %s: alias already provided by %s",
                    operation.describe(),
                    component.name,
                    existing.describe(),
                )
                continue
            pass_through = operation.is_pass_through
            operation.receiver = component.type
            if pass_through and not edge.accessor:
                operation.results = [component.type]
            taken[operation.alias] = operation
            component.surface.append(operation)
            if operation.package_export:
                component.functions.append(operation)

    @staticmethod
    def _export_own(component: Component) -> None:
        for annotation in component.annotations:
            parsed = parse_type_annotation(annotation, owner=component.name)
            if not isinstance(parsed, Export):
                continue
            for operation in component.operations:
                if operation.package_export or not operation.exported:
                    continue
                if parsed.pattern.matches(operation.alias, component.name):
                    operation.package_export = True
                    component.functions.append(operation)


__all__ = ["EdgeState", "SurfaceResolver", "apply_modifier"]
