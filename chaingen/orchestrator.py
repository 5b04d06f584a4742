"""Pipeline orchestration for generation runs."""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import ChaingenConfig, load_config
from .context import ResolutionContext, UnwrapRegistry
from .emit import Artifact, ModuleRenderer
from .errors import EmissionError
from .graph import TypeGraph, TypeGraphBuilder
from .introspection import Introspector, PythonSourceIntrospector
from .logging import get_logger
from .resolver import SurfaceResolver


@dataclass
class GenerationOutcome:
    """Result of a generation run."""

    artifacts: List[Artifact] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)
    diff: str = ""
    dry_run: bool = False


class Orchestrator:
    """Coordinates discovery, resolution and emission for one source tree."""

    def __init__(self, shared_unwraps: UnwrapRegistry | None = None) -> None:
        self.shared_unwraps = shared_unwraps if shared_unwraps is not None else UnwrapRegistry()
        self.logger = get_logger("orchestrator")

    def run_generate(
        self,
        path: str | Path,
        *,
        overrides: Optional[Dict[str, Any]] = None,
        dry_run: bool = False,
    ) -> GenerationOutcome:
        """Generate chain modules for the components under ``path``."""
        config = load_config(Path(path)).with_overrides(overrides)
        config.validate()
        self.logger.info("Starting generation for %s", config.root)

        introspector = PythonSourceIntrospector(
            config.root,
            tag=config.tag,
            file_suffix=config.file_suffix,
            exclude_paths=config.exclude_paths,
        )
        graph = self.discover(introspector, config)
        context = ResolutionContext(
            strict=config.err_on_conflict,
            unwraps=self.shared_unwraps if config.shared_unwrap_registry else UnwrapRegistry(),
        )
        SurfaceResolver(context).resolve_graph(graph)

        components = graph.order if config.recursive else graph.roots
        artifacts = ModuleRenderer(config.file_suffix).render(components)
        outcome = GenerationOutcome(artifacts=artifacts, dry_run=dry_run)
        if dry_run:
            outcome.diff = "".join(self._render_diff(artifact, config.root) for artifact in artifacts)
        else:
            outcome.written = [self._write(artifact, config.root) for artifact in artifacts]
        self.logger.info(
            "Generation finished: %d components, %d artifacts%s",
            len(graph),
            len(artifacts),
            " (dry run)" if dry_run else "",
        )
        return outcome

    def discover(self, introspector: Introspector, config: ChaingenConfig) -> TypeGraph:
        roots = introspector.locate(config.types)
        self.logger.debug("Root components: %s", ", ".join(ref.key for ref in roots) or "<none>")
        return TypeGraphBuilder(introspector).build(roots)

    def _write(self, artifact: Artifact, root: Path) -> Path:
        try:
            artifact.path.write_text(artifact.text, encoding="utf-8")
        except OSError as exc:
            raise EmissionError(f"error writing {artifact.path}: {exc}") from exc
        self.logger.info("generated file: %s", _relative(artifact.path, root))
        return artifact.path

    @staticmethod
    def _render_diff(artifact: Artifact, root: Path) -> str:
        original = artifact.path.read_text(encoding="utf-8") if artifact.path.exists() else ""
        name = _relative(artifact.path, root)
        diff = difflib.unified_diff(
            original.splitlines(keepends=True),
            artifact.text.splitlines(keepends=True),
            fromfile=f"{name} (original)",
            tofile=f"{name} (generated)",
        )
        return "".join(diff)


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


__all__ = ["GenerationOutcome", "Orchestrator"]
