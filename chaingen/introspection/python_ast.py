"""Static introspection of Python sources with the ``ast`` module.

Components are top-level classes of the modules found under a source root.
Nothing is imported or executed: names used in annotations are resolved through
each module's import statements.
"""

from __future__ import annotations

import ast
import builtins
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..errors import DiscoveryError, ModifierSyntaxError
from ..logging import get_logger
from ..models import (
    ANY,
    BRACKETS,
    BUILTINS,
    ELLIPSIS,
    UNION,
    Param,
    ParamKind,
    SourcePosition,
    TypeRef,
)
from .base import ComponentInfo, EdgeInfo, Introspector, OperationInfo

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "venv",
    ".tox",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
}

_SKIPPED_DECORATORS = {
    "staticmethod",
    "classmethod",
    "property",
    "cached_property",
    "overload",
}
_ACCESSOR_DECORATOR_ATTRS = {"setter", "getter", "deleter"}

_SELF_TYPES = {("typing", "Self"), ("typing_extensions", "Self")}
_CLASS_VAR_TYPES = {("typing", "ClassVar"), ("typing_extensions", "ClassVar")}
_TUPLE_TYPES = {(BUILTINS, "tuple"), ("typing", "Tuple")}

ANNOTATION_ATTRIBUTE = "__chaingen__"

# Bound on re-export chains followed while canonicalising a name.
_MAX_REEXPORT_DEPTH = 8


@dataclass
class _Module:
    name: str
    path: Path
    tree: ast.Module
    is_package: bool
    imports: Dict[str, Tuple[str, Optional[str]]] = field(default_factory=dict)
    classes: Dict[str, ast.ClassDef] = field(default_factory=dict)

    @property
    def package(self) -> str:
        if self.is_package:
            return self.name
        return self.name.rpartition(".")[0]


class PythonSourceIntrospector(Introspector):
    """Indexes every module under ``root`` and describes its classes."""

    def __init__(
        self,
        root: Path,
        *,
        tag: str = "chaingen",
        file_suffix: str = "_chain.py",
        exclude_paths: Sequence[str] = (),
    ) -> None:
        self.root = Path(root).resolve()
        self.tag = tag
        self.file_suffix = file_suffix
        self.exclude_paths = list(exclude_paths)
        self.logger = get_logger("introspection")
        self._modules: Dict[str, _Module] = {}
        self._described: Dict[str, ComponentInfo] = {}
        self._docs: Dict[SourcePosition, Optional[str]] = {}
        self._index()

    @property
    def modules(self) -> List[str]:
        return list(self._modules)

    def locate(self, names: Sequence[str]) -> List[TypeRef]:
        if not names:
            return [ref for ref in self._all_classes() if self._is_composed(ref)]
        found: List[TypeRef] = []
        for name in names:
            matches = [ref for ref in self._all_classes() if self._matches_name(ref, name)]
            if not matches:
                raise DiscoveryError(f"unable to find component type {name!r} in {self.root}")
            found.extend(ref for ref in matches if ref not in found)
        return found

    def describe(self, ref: TypeRef) -> ComponentInfo:
        cached = self._described.get(ref.key)
        if cached is not None:
            return cached
        module = self._modules.get(ref.module or "")
        node = module.classes.get(ref.name) if module is not None else None
        if module is None or node is None:
            raise DiscoveryError(f"could not discover source for component {ref.key!r}")
        info = ComponentInfo(type=ref, path=module.path)
        info.annotations = self._class_annotations(node, ref)
        for statement in node.body:
            if isinstance(statement, ast.FunctionDef):
                operation = self._operation(statement, module, ref)
                if operation is not None:
                    info.operations.append(operation)
            elif isinstance(statement, ast.AsyncFunctionDef):
                self.logger.debug("Skipping coroutine %s.%s", ref.name, statement.name)
            elif isinstance(statement, ast.AnnAssign) and isinstance(statement.target, ast.Name):
                edge = self._edge(statement, module, ref)
                if edge is not None:
                    info.edges.append(edge)
        self._described[ref.key] = info
        return info

    def documentation(self, position: SourcePosition) -> Optional[str]:
        return self._docs.get(position)

    # indexing

    def _index(self) -> None:
        for path in self._iter_sources():
            name, is_package = _module_name(path)
            try:
                tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
            except (OSError, UnicodeDecodeError, SyntaxError) as exc:
                raise DiscoveryError(f"error loading source {path}: {exc}") from exc
            module = _Module(name=name, path=path, tree=tree, is_package=is_package)
            for statement in _top_level(tree.body):
                if isinstance(statement, ast.ClassDef):
                    module.classes.setdefault(statement.name, statement)
                elif isinstance(statement, (ast.Import, ast.ImportFrom)):
                    self._record_import(module, statement)
            self._modules[name] = module
        self.logger.debug("Indexed %d modules under %s", len(self._modules), self.root)

    def _iter_sources(self) -> Iterator[Path]:
        for path in sorted(self.root.rglob("*.py")):
            relative = path.relative_to(self.root)
            if any(part in _EXCLUDED_DIRS for part in relative.parts[:-1]):
                continue
            if path.name.endswith(self.file_suffix):
                continue
            if self._is_excluded(relative.as_posix()):
                continue
            yield path

    def _is_excluded(self, relative: str) -> bool:
        for pattern in self.exclude_paths:
            if pattern.endswith("/"):
                if relative.startswith(pattern) or f"/{pattern}" in f"/{relative}":
                    return True
            elif fnmatchcase(relative, pattern):
                return True
        return False

    @staticmethod
    def _record_import(module: _Module, statement: ast.AST) -> None:
        if isinstance(statement, ast.Import):
            for alias in statement.names:
                if alias.asname:
                    module.imports[alias.asname] = (alias.name, None)
                else:
                    head = alias.name.split(".", 1)[0]
                    module.imports[head] = (head, None)
            return
        assert isinstance(statement, ast.ImportFrom)
        source = _absolute_module(module, statement.level, statement.module)
        for alias in statement.names:
            if alias.name == "*":
                continue
            module.imports[alias.asname or alias.name] = (source, alias.name)

    def _all_classes(self) -> Iterator[TypeRef]:
        for module in self._modules.values():
            for name in module.classes:
                yield TypeRef(name, module.name)

    def _is_composed(self, ref: TypeRef) -> bool:
        info = self.describe(ref)
        return bool(info.edges) or any(item.strip().startswith("ext(") for item in info.annotations)

    @staticmethod
    def _matches_name(ref: TypeRef, name: str) -> bool:
        if "." in name:
            return ref.key == name
        return ref.name == name

    def _is_component(self, ref: TypeRef) -> bool:
        module = self._modules.get(ref.module or "")
        return module is not None and ref.name in module.classes and not ref.args

    # class members

    def _class_annotations(self, node: ast.ClassDef, owner: TypeRef) -> List[str]:
        for statement in node.body:
            if not isinstance(statement, ast.Assign):
                continue
            targets = [target.id for target in statement.targets if isinstance(target, ast.Name)]
            if ANNOTATION_ATTRIBUTE not in targets:
                continue
            value = statement.value
            if isinstance(value, ast.Constant) and isinstance(value.value, str):
                return [value.value]
            if isinstance(value, (ast.Tuple, ast.List)) and all(
                isinstance(item, ast.Constant) and isinstance(item.value, str) for item in value.elts
            ):
                return [item.value for item in value.elts]  # type: ignore[attr-defined]
            raise ModifierSyntaxError(
                f"{ANNOTATION_ATTRIBUTE} must be a string or a tuple of strings",
                edge=owner.name,
                token=ast.unparse(value),
            )
        return []

    def _operation(
        self, node: ast.FunctionDef, module: _Module, owner: TypeRef
    ) -> Optional[OperationInfo]:
        name = node.name
        if name.startswith("__") and name.endswith("__"):
            return None
        if any(self._skips_decorator(decorator) for decorator in node.decorator_list):
            return None
        if not (node.args.posonlyargs or node.args.args):
            return None
        position = SourcePosition(module.path, node.lineno)
        self._docs[position] = ast.get_docstring(node)
        return OperationInfo(
            name=name,
            params=self._params(node.args, module, owner),
            results=self._results(node.returns, module, owner),
            exported=not name.startswith("_"),
            position=position,
        )

    @staticmethod
    def _skips_decorator(decorator: ast.expr) -> bool:
        target = decorator.func if isinstance(decorator, ast.Call) else decorator
        if isinstance(target, ast.Name):
            return target.id in _SKIPPED_DECORATORS
        if isinstance(target, ast.Attribute):
            return target.attr in _SKIPPED_DECORATORS or target.attr in _ACCESSOR_DECORATOR_ATTRS
        return False

    def _params(self, args: ast.arguments, module: _Module, owner: TypeRef) -> List[Param]:
        positional = [*args.posonlyargs, *args.args]
        first_default = len(positional) - len(args.defaults)
        params: List[Param] = []
        for index, arg in enumerate(positional):
            if index == 0:
                continue
            kind = ParamKind.POSITIONAL_ONLY if index < len(args.posonlyargs) else ParamKind.POSITIONAL
            default = None
            if index >= first_default:
                default = ast.unparse(args.defaults[index - first_default])
            params.append(Param(arg.arg, self._type(arg.annotation, module, owner), kind, default))
        if args.vararg is not None:
            params.append(
                Param(
                    args.vararg.arg,
                    self._type(args.vararg.annotation, module, owner),
                    ParamKind.VAR_POSITIONAL,
                )
            )
        for arg, default_node in zip(args.kwonlyargs, args.kw_defaults):
            default = ast.unparse(default_node) if default_node is not None else None
            params.append(
                Param(arg.arg, self._type(arg.annotation, module, owner), ParamKind.KEYWORD_ONLY, default)
            )
        if args.kwarg is not None:
            params.append(
                Param(
                    args.kwarg.arg,
                    self._type(args.kwarg.annotation, module, owner),
                    ParamKind.VAR_KEYWORD,
                )
            )
        return params

    def _results(self, returns: Optional[ast.expr], module: _Module, owner: TypeRef) -> List[TypeRef]:
        if returns is None:
            return [ANY]
        ref = self._type(returns, module, owner)
        if ref.name == "None" and ref.module is None:
            return []
        if (ref.module, ref.name) in _TUPLE_TYPES and ref.args:
            if not any(arg.name == ELLIPSIS for arg in ref.args):
                return list(ref.args)
        return [ref]

    def _edge(self, statement: ast.AnnAssign, module: _Module, owner: TypeRef) -> Optional[EdgeInfo]:
        assert isinstance(statement.target, ast.Name)
        name = statement.target.id
        child = self._type(statement.annotation, module, owner)
        if (child.module, child.name) in _CLASS_VAR_TYPES:
            return None
        annotation = self._field_annotation(statement.value)
        if annotation is not None:
            if annotation.strip() == "-":
                return None
            return EdgeInfo(name=name, child=child, annotation=annotation)
        if self._is_component(child):
            return EdgeInfo(name=name, child=child)
        return None

    def _field_annotation(self, value: Optional[ast.expr]) -> Optional[str]:
        if not isinstance(value, ast.Call):
            return None
        func = value.func
        func_name = func.attr if isinstance(func, ast.Attribute) else getattr(func, "id", None)
        if func_name != "field":
            return None
        for keyword in value.keywords:
            if keyword.arg != "metadata" or not isinstance(keyword.value, ast.Dict):
                continue
            for key, item in zip(keyword.value.keys, keyword.value.values):
                if (
                    isinstance(key, ast.Constant)
                    and key.value == self.tag
                    and isinstance(item, ast.Constant)
                    and isinstance(item.value, str)
                ):
                    return item.value
        return None

    # annotations

    def _type(self, node: Optional[ast.expr], module: _Module, owner: TypeRef) -> TypeRef:
        if node is None:
            return ANY
        if isinstance(node, ast.Constant):
            if node.value is None:
                return TypeRef("None")
            if node.value is Ellipsis:
                return TypeRef(ELLIPSIS)
            if isinstance(node.value, str):
                try:
                    parsed = ast.parse(node.value, mode="eval").body
                except SyntaxError:
                    return TypeRef(node.value)
                return self._type(parsed, module, owner)
            return TypeRef(repr(node.value))
        if isinstance(node, (ast.Name, ast.Attribute)):
            parts = _dotted(node)
            if parts is None:
                return TypeRef(ast.unparse(node))
            module_name, name = self._qualify(module, parts)
            if (module_name, name) in _SELF_TYPES:
                return owner
            return TypeRef(name, module_name)
        if isinstance(node, ast.Subscript):
            base = self._type(node.value, module, owner)
            elements = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
            return base.with_args(*(self._type(item, module, owner) for item in elements))
        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            members: List[TypeRef] = []
            for side in (node.left, node.right):
                ref = self._type(side, module, owner)
                members.extend(ref.args if ref.name == UNION else (ref,))
            return TypeRef(UNION, None, tuple(members))
        if isinstance(node, ast.List):
            return TypeRef(BRACKETS, None, tuple(self._type(item, module, owner) for item in node.elts))
        return TypeRef(ast.unparse(node))

    def _qualify(self, module: _Module, parts: List[str]) -> Tuple[Optional[str], str]:
        head, rest = parts[0], parts[1:]
        if not rest:
            if head in module.classes:
                return module.name, head
            if head in module.imports:
                source, attribute = module.imports[head]
                if attribute is None:
                    return None, head
                return self._canonical(source, attribute)
            if hasattr(builtins, head):
                return BUILTINS, head
            return None, head
        if head in module.imports:
            source, attribute = module.imports[head]
            base = source if attribute is None else f"{source}.{attribute}"
        else:
            base = head
        return self._canonical(".".join([base, *rest[:-1]]), rest[-1])

    def _canonical(self, module_name: str, name: str, depth: int = 0) -> Tuple[str, str]:
        module = self._modules.get(module_name)
        if module is None or depth > _MAX_REEXPORT_DEPTH or name in module.classes:
            return module_name, name
        if name in module.imports:
            source, attribute = module.imports[name]
            if attribute is not None:
                return self._canonical(source, attribute, depth + 1)
        return module_name, name


def _module_name(path: Path) -> Tuple[str, bool]:
    is_package = path.name == "__init__.py"
    parts: List[str] = [] if is_package else [path.stem]
    directory = path.parent
    while (directory / "__init__.py").exists():
        parts.insert(0, directory.name)
        if directory.parent == directory:
            break
        directory = directory.parent
    return ".".join(parts), is_package


def _absolute_module(module: _Module, level: int, target: Optional[str]) -> str:
    if level == 0:
        return target or ""
    parts = module.package.split(".") if module.package else []
    if level > 1:
        parts = parts[: len(parts) - (level - 1)]
    base = ".".join(parts)
    if not target:
        return base
    return f"{base}.{target}" if base else target


def _dotted(node: ast.expr) -> Optional[List[str]]:
    parts: List[str] = []
    while isinstance(node, ast.Attribute):
        parts.insert(0, node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.insert(0, node.id)
    return parts


def _top_level(statements: Iterable[ast.stmt]) -> Iterator[ast.stmt]:
    """Yield module statements, descending into ``if``/``try`` blocks."""
    for statement in statements:
        yield statement
        if isinstance(statement, ast.If):
            yield from _top_level(statement.body)
            yield from _top_level(statement.orelse)
        elif isinstance(statement, ast.Try):
            yield from _top_level(statement.body)
            for handler in statement.handlers:
                yield from _top_level(handler.body)
            yield from _top_level(statement.orelse)
            yield from _top_level(statement.finalbody)


__all__ = ["ANNOTATION_ATTRIBUTE", "PythonSourceIntrospector"]
