"""Renders resolved components into ``*_chain.py`` modules."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader

from ..logging import get_logger
from ..models import Component, Operation, Param, ParamKind
from ..transform import Shape, body, call_arguments, documentation, forwarding_shape
from .aliases import ImportTable

HEADER = "# Code generated by chaingen. DO NOT EDIT."
MIXIN_SUFFIX = "Chain"
TEMPLATE = "module.py.j2"
INDENT = "    "

_RESERVED = {"_copy", "annotations", "TYPE_CHECKING"}


@dataclass
class Artifact:
    """A generated module ready to be written."""

    path: Path
    module: str
    text: str


@dataclass
class _Mixin:
    name: str
    component: str
    methods: List[str]


class ModuleRenderer:
    """Groups components by source module and renders one artifact per module."""

    def __init__(self, file_suffix: str = "_chain.py") -> None:
        self.file_suffix = file_suffix
        self.logger = get_logger("emit")
        loader = FileSystemLoader(str(Path(__file__).with_name("templates")))
        self.env = Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)

    def output_path(self, source: Path) -> Path:
        return source.with_name(source.stem + self.file_suffix)

    def output_module(self, component: Component) -> str:
        stem = self.output_path(component.path).stem
        if component.path.name == "__init__.py":
            package = component.module
        else:
            package = component.module.rpartition(".")[0]
        return f"{package}.{stem}" if package else stem

    def render(self, components: Sequence[Component]) -> List[Artifact]:
        grouped: Dict[Path, List[Component]] = {}
        for component in components:
            grouped.setdefault(component.path, []).append(component)
        artifacts = []
        for source, group in grouped.items():
            artifact = self._render_module(source, group)
            if artifact is not None:
                artifacts.append(artifact)
        return artifacts

    def _render_module(self, source: Path, components: List[Component]) -> Optional[Artifact]:
        table = ImportTable(_RESERVED)
        table.reserve(*(component.name for component in components))
        table.reserve(*(component.name + MIXIN_SUFFIX for component in components))
        functions = self._unique_functions(source, components)
        table.reserve(*(operation.alias for _, operation in functions))

        mixins = []
        needs_copy = False
        for component in components:
            if not component.surface:
                continue
            methods = []
            for operation in component.surface:
                needs_copy = needs_copy or forwarding_shape(operation) is Shape.STORE_COPY
                methods.append(self._method(operation, table))
            mixins.append(_Mixin(component.name + MIXIN_SUFFIX, component.name, methods))
        rendered_functions = [self._function(component, operation, table) for component, operation in functions]
        if not mixins and not rendered_functions:
            self.logger.debug("Nothing generated for %s", source)
            return None

        template = self.env.get_template(TEMPLATE)
        text = template.render(
            header=HEADER,
            source=source.name,
            needs_copy=needs_copy,
            imports=table.imports,
            classes=mixins,
            functions=rendered_functions,
        )
        return Artifact(
            path=self.output_path(source),
            module=self.output_module(components[0]),
            text=text.rstrip("\n") + "\n",
        )

    def _unique_functions(self, source: Path, components: List[Component]) -> List[Tuple[Component, Operation]]:
        seen: Dict[str, Operation] = {}
        functions: List[Tuple[Component, Operation]] = []
        for component in components:
            for operation in component.functions:
                existing = seen.get(operation.alias)
                if existing is not None:
                    self.logger.warning(
                        "Skipping function %s for %s in %s: already generated for %s",
                        operation.alias,
                        operation.describe(),
                        source.name,
                        existing.describe(),
                    )
                    continue
                seen[operation.alias] = operation
                functions.append((component, operation))
        return functions

    def _method(self, operation: Operation, table: ImportTable) -> str:
        lines = []
        if operation.projection is not None:
            lines.append("@staticmethod")
            signature = _signature(operation.params, table)
        else:
            signature = _signature(operation.params, table, leading="self")
        lines.append(f"def {operation.alias}({signature}) -> {table.annotation(operation.results)}:")
        lines.extend(_indented(_docstring(documentation(operation))))
        lines.extend(_indented(body(operation)))
        return "\n".join(lines)

    def _function(self, component: Component, operation: Operation, table: ImportTable) -> str:
        signature = _signature(operation.params, table)
        arguments = ", ".join(call_arguments(operation, adapted=False))
        lines = [f"def {operation.alias}({signature}) -> {table.annotation(operation.results)}:"]
        lines.extend(_indented(_docstring(documentation(operation))))
        lines.append(f"{INDENT}from {component.module} import {component.name}")
        lines.append("")
        lines.append(f"{INDENT}return {component.name}().{operation.alias}({arguments})")
        return "\n".join(lines)


def _signature(params: Sequence[Param], table: ImportTable, leading: Optional[str] = None) -> str:
    parts = [leading] if leading else []
    positional_only = [param for param in params if param.kind is ParamKind.POSITIONAL_ONLY]
    has_varargs = any(param.kind is ParamKind.VAR_POSITIONAL for param in params)
    marked_keywords = False
    for param in params:
        if param.kind is ParamKind.KEYWORD_ONLY and not has_varargs and not marked_keywords:
            parts.append("*")
            marked_keywords = True
        text = f"{param.name}: {table.identifier(param.type)}"
        if param.kind is ParamKind.VAR_POSITIONAL:
            text = "*" + text
        elif param.kind is ParamKind.VAR_KEYWORD:
            text = "**" + text
        if param.default is not None:
            text += f" = {param.default}"
        parts.append(text)
        if positional_only and param is positional_only[-1]:
            parts.append("/")
    return ", ".join(parts)


def _docstring(doc: Optional[str]) -> List[str]:
    if not doc:
        return []
    text = doc.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if text.endswith('"'):
        text = text[:-1] + '\\"'
    lines = text.splitlines()
    if len(lines) == 1:
        return [f'"""{lines[0]}"""']
    return [f'"""{lines[0]}', *lines[1:], '"""']


def _indented(lines: Sequence[str]) -> List[str]:
    return [INDENT + line if line else "" for line in lines]


__all__ = ["Artifact", "HEADER", "MIXIN_SUFFIX", "ModuleRenderer"]
