"""Call-site decisions for generated operations.

Forwarding shapes and argument lists are computed here so that emission only
has to lay the resulting statements out. Unwrap adapters are synthesized on a
component once its surface is known.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from .context import ResolutionContext
from .logging import get_logger
from .models import Component, Operation, Param, ParamAdapter, ParamKind, TypeRef

ADAPTER_PREFIX = "_unwrap_"
CLONE = "_clone"
INDENT = "    "


class Shape(str, Enum):
    """How a generated operation reaches the child operation it exposes."""

    STORE_COPY = "store_copy"
    STORE_IN_PLACE = "store_in_place"
    DELEGATE = "delegate"
    PROJECT = "project"


class CallSiteTransform:
    """Rewrites parameters of a component's surface through unwrap projections."""

    def __init__(self, context: ResolutionContext) -> None:
        self.context = context
        self.logger = get_logger("transform")
        self._adapters: Dict[Tuple[str, str], Operation] = {}

    def apply(self, component: Component) -> None:
        if not self.context.unwraps:
            return
        for operation in list(component.surface):
            if operation.projection is not None:
                continue
            params = list(operation.params)
            for index, param in enumerate(params):
                exposed = self._adapt(component, operation, index, param)
                if exposed is not None:
                    params[index] = exposed
            operation.params = params

    def _adapt(
        self, component: Component, operation: Operation, index: int, param: Param
    ) -> Optional[Param]:
        registry = self.context.unwraps
        if param.kind is ParamKind.VAR_KEYWORD:
            return None
        element = param.sequence_element()
        if element is not None:
            projection = registry.lookup(element)
            if projection is None:
                return None
            adapter = self._adapter(component, projection)
            operation.adapters[index] = ParamAdapter(projection, adapter)
            exposed = projection.receiver if param.variadic else param.type.with_args(projection.receiver)
            self.logger.debug(
                "Unwrapping %s.%s(%s) through %s", component.name, operation.alias, param.name, adapter.alias
            )
            return Param(param.name, exposed, param.kind, param.default)
        projection = registry.lookup(param.type)
        if projection is None:
            return None
        operation.adapters[index] = ParamAdapter(projection)
        return Param(param.name, projection.receiver, param.kind, param.default)

    def _adapter(self, component: Component, projection: Operation) -> Operation:
        result = projection.results[0]
        key = (result.key, component.key)
        adapter = self._adapters.get(key)
        if adapter is not None:
            return adapter
        name = _unique(ADAPTER_PREFIX + projection.name, _names(component))
        adapter = Operation(
            name=name,
            receiver=component.type,
            params=[Param("items", TypeRef.list_of(projection.receiver))],
            results=[TypeRef.list_of(result)],
            origin=component,
            exported=False,
            doc=f"Project each item through {projection.name}.",
            projection=projection,
        )
        component.surface.append(adapter)
        self._adapters[key] = adapter
        return adapter


def _names(component: Component) -> Set[str]:
    return {operation.alias for operation in [*component.operations, *component.surface]}


def _unique(name: str, taken: Set[str]) -> str:
    candidate, counter = name, 1
    while candidate in taken:
        candidate = f"{name}{counter}"
        counter += 1
    return candidate


def forwarding_shape(operation: Operation) -> Shape:
    if operation.projection is not None:
        return Shape.PROJECT
    edge = operation.edge
    if operation.is_pass_through and edge is not None and not edge.accessor:
        return Shape.STORE_IN_PLACE if operation.pointer else Shape.STORE_COPY
    return Shape.DELEGATE


def call_arguments(operation: Operation, *, adapted: bool = True) -> List[str]:
    """Argument expressions forwarding the operation's parameters.

    With ``adapted`` false the parameters are passed on untouched, which is how
    package-level functions hand their arguments to the method they wrap.
    """
    arguments = []
    for index, param in enumerate(operation.params):
        value = param.name
        adapter = operation.adapters.get(index) if adapted else None
        if adapter is not None:
            if adapter.adapter is not None:
                value = f"self.{adapter.adapter.alias}({param.name})"
            else:
                value = f"{param.name}.{adapter.projection.name}()"
        if param.kind is ParamKind.VAR_POSITIONAL:
            arguments.append(f"*{value}")
        elif param.kind is ParamKind.VAR_KEYWORD:
            arguments.append(f"**{value}")
        elif param.kind is ParamKind.KEYWORD_ONLY:
            arguments.append(f"{param.name}={value}")
        else:
            arguments.append(value)
    return arguments


def child_call(operation: Operation) -> str:
    """Expression invoking the exposed operation on the edge's child."""
    edge = operation.edge
    if edge is None:
        raise ValueError(f"{operation.describe()} is not forwarded through an edge")
    child = f"self.{edge.name}()" if edge.accessor else f"self.{edge.name}"
    return f"{child}.{operation.target}({', '.join(call_arguments(operation))})"


def body(operation: Operation) -> List[str]:
    """Statements of a generated method, indented relative to its ``def``."""
    shape = forwarding_shape(operation)
    if shape is Shape.PROJECT:
        assert operation.projection is not None
        return [f"return [item.{operation.projection.name}() for item in items]"]

    edge = operation.edge
    assert edge is not None
    call = child_call(operation)
    if shape is Shape.STORE_COPY:
        statements = [
            f"{CLONE} = _copy.copy(self)",
            f"{CLONE}.{edge.name} = {call}",
            f"return {CLONE}",
        ]
    elif shape is Shape.STORE_IN_PLACE:
        statements = [f"self.{edge.name} = {call}", "return self"]
    elif operation.wrapper is not None:
        spread = "*" if len(operation.forwarded_results) > 1 else ""
        statements = [f"return self.{operation.wrapper.alias}({spread}{call})"]
    else:
        statements = [f"return {call}"]

    lines = [line for code in operation.prefixes for line in code.splitlines()]
    if not operation.postfixes:
        return lines + statements
    lines.append("try:")
    lines.extend(INDENT + statement for statement in statements)
    lines.append("finally:")
    for code in reversed(operation.postfixes):
        lines.extend(INDENT + line for line in code.splitlines())
    return lines


def documentation(operation: Operation) -> Optional[str]:
    """Docstring of the exposed operation, renamed to its alias."""
    doc = operation.doc
    if not doc or operation.alias == operation.name:
        return doc
    first, newline, rest = doc.partition("\n")
    words = first.split(" ", 1)
    if words[0] == operation.name:
        words[0] = operation.alias
        first = " ".join(words)
    return first + newline + rest


__all__ = [
    "ADAPTER_PREFIX",
    "CallSiteTransform",
    "Shape",
    "body",
    "call_arguments",
    "child_call",
    "documentation",
    "forwarding_shape",
]
