"""Tests for chaingen.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from chaingen.config import ChaingenConfig, ConfigError, load_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, ChaingenConfig)
    assert config.root == tmp_path.resolve()
    assert config.types == []
    assert config.recursive is True
    assert config.file_suffix == "_chain.py"
    assert config.err_on_conflict is True
    assert config.tag == "chaingen"
    assert config.shared_unwrap_registry is False
    assert config.exclude_paths == []


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".chaingen.yml"
    config_file.write_text(
        """
types: [SQLBuilder, Report]
recursive: false
file_suffix: _gen.py
err_on_conflict: "no"
tag: compose
shared_unwrap_registry: true
exclude_paths:
  - "build/"
  - "*.tmpl.py"
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.root == tmp_path.resolve()
    assert config.types == ["SQLBuilder", "Report"]
    assert config.recursive is False
    assert config.file_suffix == "_gen.py"
    assert config.err_on_conflict is False
    assert config.tag == "compose"
    assert config.shared_unwrap_registry is True
    assert config.exclude_paths == ["build/", "*.tmpl.py"]


def test_load_config_accepts_a_file_inside_the_directory(tmp_path: Path) -> None:
    (tmp_path / ".chaingen.yml").write_text("types: Query\n", encoding="utf-8")

    config = load_config(tmp_path / "models.py")

    assert config.types == ["Query"]


def test_empty_file_yields_defaults(tmp_path: Path) -> None:
    (tmp_path / ".chaingen.yml").write_text("\n", encoding="utf-8")

    assert load_config(tmp_path).types == []


def test_non_mapping_root_raises(tmp_path: Path) -> None:
    (tmp_path / ".chaingen.yml").write_text("- SQLBuilder\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(tmp_path)


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    (tmp_path / ".chaingen.yml").write_text("types: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Failed to parse"):
        load_config(tmp_path)


def test_overrides_replace_only_given_values(tmp_path: Path) -> None:
    config = ChaingenConfig(root=tmp_path, types=["A"])

    updated = config.with_overrides({"types": "B, C", "recursive": None, "err_on_conflict": False})

    assert updated.types == ["B", "C"]
    assert updated.recursive is True
    assert updated.err_on_conflict is False
    assert config.types == ["A"]


def test_unknown_override_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="colour"):
        ChaingenConfig(root=tmp_path).with_overrides({"colour": "blue"})


@pytest.mark.parametrize("suffix", ["_chain", ".py", "_chain.txt"])
def test_validate_rejects_bad_suffix(tmp_path: Path, suffix: str) -> None:
    with pytest.raises(ConfigError, match="file_suffix"):
        ChaingenConfig(root=tmp_path, file_suffix=suffix).validate()


def test_validate_rejects_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="does not exist"):
        ChaingenConfig(root=tmp_path / "missing").validate()
