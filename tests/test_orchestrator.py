"""End-to-end tests for generation runs."""

from __future__ import annotations

import importlib
import logging
import shutil
import textwrap
from pathlib import Path

import pytest

from chaingen.context import UnwrapRegistry
from chaingen.errors import DiscoveryError, NamingConflictError
from chaingen.orchestrator import Orchestrator

EXAMPLE = Path(__file__).resolve().parents[1] / "examples" / "sql_builder"

TAGGING = """
    from __future__ import annotations

    from dataclasses import dataclass, field
    from typing import List


    class Tag:
        def name(self) -> str:
            return "tag"


    @dataclass
    class Holder:
        tag: Tag = field(default_factory=Tag, metadata={"chaingen": "-*,unwrap=as_tag"})

        def as_tag(self) -> Tag:
            return self.tag


    class Tagger:
        def label(self, tags: List[Tag]) -> Tagger:
            return self


    @dataclass
    class Index:
        tagger: Tagger = field(default_factory=Tagger)
"""


def _copy_example(tmp_path: Path, *, keep_generated: bool = False) -> Path:
    package = tmp_path / f"sqlgen_{tmp_path.name}"
    shutil.copytree(EXAMPLE, package)
    if not keep_generated:
        for generated in package.rglob("*_chain.py"):
            generated.unlink()
    return package


def _write_package(tmp_path: Path, name: str, files: dict) -> Path:
    package = tmp_path / name
    package.mkdir()
    (package / "__init__.py").write_text("", encoding="utf-8")
    for relative, content in files.items():
        (package / relative).write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
    return package


def test_generate_end_to_end(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    package = _copy_example(tmp_path)

    with caplog.at_level(logging.INFO, logger="chaingen"):
        outcome = Orchestrator().run_generate(package)

    assert sorted(path.relative_to(package).as_posix() for path in outcome.written) == [
        "offset/offset_chain.py",
        "sql_builder_chain.py",
    ]
    assert "generated file: sql_builder_chain.py" in caplog.text
    assert "generated file: offset/offset_chain.py" in caplog.text

    monkeypatch.syspath_prepend(str(tmp_path))
    module = importlib.import_module(package.name)
    builder = module.SQLBuilder()

    assert builder.where("id = 5").limit(10).offset(5).build() == "WHERE id = 5 LIMIT 10 OFFSET 5"
    assert builder.build() == ""

    chain = importlib.import_module(f"{package.name}.sql_builder_chain")
    assert chain.where("active").build() == "WHERE active"


def test_dry_run_writes_nothing(tmp_path: Path) -> None:
    package = _copy_example(tmp_path)

    outcome = Orchestrator().run_generate(package, dry_run=True)

    assert outcome.dry_run is True
    assert outcome.written == []
    assert not (package / "sql_builder_chain.py").exists()
    assert "+++ sql_builder_chain.py (generated)" in outcome.diff
    assert "+class SQLBuilderChain:" in outcome.diff


def test_dry_run_on_up_to_date_tree_has_no_diff(tmp_path: Path) -> None:
    package = _copy_example(tmp_path, keep_generated=True)
    for generated in package.rglob("*_chain.py"):
        text = generated.read_text(encoding="utf-8")
        generated.write_text(text.replace("import sql_builder.", f"import {package.name}."), encoding="utf-8")
    chain = package / "sql_builder_chain.py"
    chain.write_text(
        chain.read_text(encoding="utf-8").replace(
            "from sql_builder.sql_builder", f"from {package.name}.sql_builder"
        ),
        encoding="utf-8",
    )

    outcome = Orchestrator().run_generate(package, dry_run=True)

    assert outcome.diff == ""


def test_non_recursive_run_only_emits_roots(tmp_path: Path) -> None:
    package = _copy_example(tmp_path)

    outcome = Orchestrator().run_generate(package, overrides={"recursive": False})

    assert [path.name for path in outcome.written] == ["sql_builder_chain.py"]


def test_unknown_root_type_fails(tmp_path: Path) -> None:
    package = _copy_example(tmp_path)

    with pytest.raises(DiscoveryError, match="Missing"):
        Orchestrator().run_generate(package, overrides={"types": ["Missing"]})
    assert not (package / "sql_builder_chain.py").exists()


def test_lenient_override_drops_conflicts(tmp_path: Path) -> None:
    package = _write_package(
        tmp_path,
        "clash",
        {
            "models.py": """
                from dataclasses import dataclass, field


                class Alpha:
                    def run(self) -> int:
                        return 1


                class Beta:
                    def run(self) -> int:
                        return 2


                @dataclass
                class Both:
                    alpha: Alpha = field(default_factory=Alpha)
                    beta: Beta = field(default_factory=Beta)
            """
        },
    )

    with pytest.raises(NamingConflictError):
        Orchestrator().run_generate(package, dry_run=True)

    outcome = Orchestrator().run_generate(package, overrides={"err_on_conflict": False}, dry_run=True)

    (artifact,) = outcome.artifacts
    assert "return self.alpha.run()" in artifact.text
    assert "self.beta.run()" not in artifact.text


def test_unwrap_registry_is_per_run_by_default(tmp_path: Path) -> None:
    package = _write_package(tmp_path, "tagging", {"model.py": TAGGING})
    orchestrator = Orchestrator()

    orchestrator.run_generate(package, overrides={"types": ["Holder"]}, dry_run=True)
    outcome = orchestrator.run_generate(package, overrides={"types": ["Index"]}, dry_run=True)

    assert len(orchestrator.shared_unwraps) == 0
    assert "_unwrap_" not in outcome.artifacts[0].text
    assert "tags: typing.List[model.Tag]" in outcome.artifacts[0].text


def test_shared_unwrap_registry_spans_runs(tmp_path: Path) -> None:
    package = _write_package(tmp_path, "tagging", {"model.py": TAGGING})
    (package / ".chaingen.yml").write_text("shared_unwrap_registry: true\n", encoding="utf-8")
    orchestrator = Orchestrator()

    first = orchestrator.run_generate(package, overrides={"types": ["Holder"]}, dry_run=True)
    second = orchestrator.run_generate(package, overrides={"types": ["Index"]}, dry_run=True)

    assert first.artifacts == []
    assert len(orchestrator.shared_unwraps) == 1
    text = second.artifacts[0].text
    assert "def label(self, tags: typing.List[model.Holder]) -> model.Index:" in text
    assert "_clone.tagger = self.tagger.label(self._unwrap_as_tag(tags))" in text
    assert "return [item.as_tag() for item in items]" in text
    compile(text, "model_chain.py", "exec")


def test_caller_registry_is_shared_between_orchestrators(tmp_path: Path) -> None:
    package = _write_package(tmp_path, "tagging", {"model.py": TAGGING})
    (package / ".chaingen.yml").write_text("shared_unwrap_registry: true\n", encoding="utf-8")
    shared = UnwrapRegistry()
    first, second = Orchestrator(shared), Orchestrator(shared)

    first.run_generate(package, overrides={"types": ["Holder"]}, dry_run=True)
    outcome = second.run_generate(package, overrides={"types": ["Index"]}, dry_run=True)

    assert first.shared_unwraps is shared
    assert second.shared_unwraps is shared
    assert len(shared) == 1
    assert "_clone.tagger = self.tagger.label(self._unwrap_as_tag(tags))" in outcome.artifacts[0].text
