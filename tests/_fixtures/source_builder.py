"""Helper utilities for writing throwaway Python packages in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

from chaingen.context import ResolutionContext
from chaingen.graph import TypeGraph, TypeGraphBuilder
from chaingen.introspection import PythonSourceIntrospector
from chaingen.resolver import SurfaceResolver


class SourceTreeBuilder:
    """Writes source files under a temporary root and runs the engine on them."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "src"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries; package directories get an ``__init__.py``."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            directory = path.parent
            while directory != self.root:
                (directory / "__init__.py").touch(exist_ok=True)
                directory = directory.parent
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def introspector(self, **options: object) -> PythonSourceIntrospector:
        return PythonSourceIntrospector(self.root, **options)  # type: ignore[arg-type]

    def graph(self, *types: str, **options: object) -> TypeGraph:
        introspector = self.introspector(**options)
        return TypeGraphBuilder(introspector).build(introspector.locate(list(types)))

    def resolve(self, *types: str, strict: bool = True, context: ResolutionContext | None = None) -> TypeGraph:
        """Discover and resolve ``types``, returning the resolved graph."""
        graph = self.graph(*types)
        SurfaceResolver(context or ResolutionContext(strict=strict)).resolve_graph(graph)
        return graph

    def path(self) -> Path:
        return self.root


__all__ = ["SourceTreeBuilder"]
