"""Module alias assignment for one generated artifact."""

from __future__ import annotations

import keyword
from typing import Dict, Iterable, List, Set

from ..models import BRACKETS, BUILTINS, ELLIPSIS, UNION, TypeRef


class ImportTable:
    """Assigns each referenced module a unique local alias.

    Aliases are the module's last dotted segment; a clash with a reserved name
    or an alias already handed out gets a numeric suffix (``offset``,
    ``offset1``, ...). Assignment order is first use, so output is stable.
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._reserved: Set[str] = set(reserved)
        self._aliases: Dict[str, str] = {}

    def reserve(self, *names: str) -> None:
        self._reserved.update(names)

    def alias_for(self, module: str) -> str:
        existing = self._aliases.get(module)
        if existing is not None:
            return existing
        base = module.rpartition(".")[2] or module
        if keyword.iskeyword(base):
            base += "_"
        taken = self._reserved | set(self._aliases.values())
        alias, counter = base, 1
        while alias in taken:
            alias = f"{base}{counter}"
            counter += 1
        self._aliases[module] = alias
        return alias

    def identifier(self, ref: TypeRef) -> str:
        """Render ``ref`` as an annotation expression valid in the artifact."""
        if ref.name == UNION:
            return " | ".join(self.identifier(arg) for arg in ref.args)
        if ref.name == BRACKETS:
            return "[" + ", ".join(self.identifier(arg) for arg in ref.args) + "]"
        if ref.name in (ELLIPSIS, "None") and ref.module is None:
            return ref.name
        if ref.module in (None, "", BUILTINS):
            base = ref.name
        else:
            base = f"{self.alias_for(ref.module)}.{ref.name}"
        if ref.args:
            return base + "[" + ", ".join(self.identifier(arg) for arg in ref.args) + "]"
        return base

    def annotation(self, results: List[TypeRef]) -> str:
        if not results:
            return "None"
        if len(results) == 1:
            return self.identifier(results[0])
        return "tuple[" + ", ".join(self.identifier(ref) for ref in results) + "]"

    @property
    def imports(self) -> List[str]:
        return [
            f"import {module} as {alias}" if module != alias else f"import {module}"
            for module, alias in self._aliases.items()
        ]


__all__ = ["ImportTable"]
