"""Configuration loading for chaingen (.chaingen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ChaingenError

CONFIG_FILENAME = ".chaingen.yml"
DEFAULT_SUFFIX = "_chain.py"
DEFAULT_TAG = "chaingen"


class ConfigError(ChaingenError):
    """Raised when the configuration file cannot be parsed or is invalid."""


@dataclass
class ChaingenConfig:
    """Represents the settings defined in .chaingen.yml."""

    root: Path
    types: List[str] = field(default_factory=list)
    recursive: bool = True
    file_suffix: str = DEFAULT_SUFFIX
    err_on_conflict: bool = True
    tag: str = DEFAULT_TAG
    shared_unwrap_registry: bool = False
    exclude_paths: List[str] = field(default_factory=list)

    def with_overrides(self, overrides: Optional[Dict[str, Any]] = None) -> "ChaingenConfig":
        """Return a copy with every non-``None`` override applied."""
        if not overrides:
            return self
        values = {key: value for key, value in overrides.items() if value is not None}
        unknown = set(values) - set(self.__dataclass_fields__)
        if unknown:
            raise ConfigError(f"Unknown configuration option(s): {', '.join(sorted(unknown))}")
        if "types" in values:
            values["types"] = _as_str_list(values["types"])
        return replace(self, **values)

    def validate(self) -> None:
        if not str(self.root):
            raise ConfigError("source directory must be set")
        if not self.root.is_dir():
            raise ConfigError(f"source directory {self.root} does not exist")
        if not self.file_suffix.endswith(".py") or self.file_suffix == ".py":
            raise ConfigError(f"file_suffix must end in .py, got {self.file_suffix!r}")
        if not self.tag:
            raise ConfigError("tag must not be empty")


def load_config(config_path: Path) -> ChaingenConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ChaingenConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = ChaingenConfig(root=root)
    config.types = _as_str_list(data.get("types"))
    config.exclude_paths = _as_str_list(data.get("exclude_paths"))
    config.file_suffix = _as_str(data.get("file_suffix")) or DEFAULT_SUFFIX
    config.tag = _as_str(data.get("tag")) or DEFAULT_TAG
    recursive = _as_bool(data.get("recursive"))
    if recursive is not None:
        config.recursive = recursive
    err_on_conflict = _as_bool(data.get("err_on_conflict"))
    if err_on_conflict is not None:
        config.err_on_conflict = err_on_conflict
    config.shared_unwrap_registry = _as_bool(data.get("shared_unwrap_registry")) or False
    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = Path(config_path).expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = ["CONFIG_FILENAME", "ChaingenConfig", "ConfigError", "load_config"]
