"""Pattern matching and renaming for operation selectors.

A selector has the form ``[TypeName.]Shape`` where the shape is one of:

* ``*``            any name (``**`` is read the same way)
* ``text``         exactly ``text``
* ``*text*``       any name containing ``text``
* ``prefix*suffix`` names starting with ``prefix`` and ending with ``suffix``

``left=right`` renames a name matched by ``left`` according to ``right``; see
:meth:`Pattern.rename`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PatternKind(str, Enum):
    ANY = "any"
    EXACT = "exact"
    AFFIX = "affix"
    CONTAINS = "contains"


@dataclass(frozen=True)
class Pattern:
    """Parsed selector."""

    kind: PatternKind
    type_name: str = ""
    text: str = ""
    prefix: str = ""
    suffix: str = ""

    @classmethod
    def parse(cls, selector: str) -> "Pattern":
        type_name = ""
        dot = selector.find(".")
        if dot >= 0:
            type_name = selector[:dot]
            selector = selector[dot + 1 :]
        if selector in ("*", "**"):
            return cls(PatternKind.ANY, type_name=type_name)
        asterisk = selector.find("*")
        if asterisk < 0:
            return cls(PatternKind.EXACT, type_name=type_name, text=selector)
        if asterisk == 0 and selector.endswith("*"):
            return cls(PatternKind.CONTAINS, type_name=type_name, text=selector[1:-1])
        return cls(
            PatternKind.AFFIX,
            type_name=type_name,
            prefix=selector[:asterisk],
            suffix=selector[asterisk + 1 :],
        )

    def matches(self, name: str, type_name: str = "") -> bool:
        """Return True when ``name`` on a receiver called ``type_name`` matches."""
        if self.type_name and self.type_name != type_name:
            return False
        if self.kind is PatternKind.ANY:
            return True
        if self.kind is PatternKind.EXACT:
            return name == self.text
        if self.kind is PatternKind.CONTAINS:
            return self.text in name
        if self.prefix and not (len(name) > len(self.prefix) and name.startswith(self.prefix)):
            return False
        if self.suffix and not (len(name) > len(self.suffix) and name.endswith(self.suffix)):
            return False
        return True

    def rename(self, name: str, right: Optional["Pattern"]) -> str:
        """Rewrite ``name`` (already matched by this pattern) using ``right``.

        The text captured by this pattern's wildcard is carried over into the
        wildcard position of ``right``.
        """
        if right is None:
            return name
        if right.kind is PatternKind.EXACT:
            return right.text
        if self.kind is PatternKind.CONTAINS:
            position = name.find(self.text)
            before = name[:position]
            after = name[position + len(self.text) :]
            if right.kind is PatternKind.CONTAINS:
                return before + right.text + after
            return right.prefix + before + after + right.suffix
        core = self.capture(name)
        if right.kind is PatternKind.CONTAINS:
            if not self.prefix:
                return core + right.text
            return right.text + core
        return right.prefix + core + right.suffix

    def capture(self, name: str) -> str:
        """Return ``name`` without this pattern's literal prefix and suffix."""
        core = name[len(self.prefix) :]
        if self.suffix:
            core = core[: len(core) - len(self.suffix)]
        return core

    def __str__(self) -> str:
        if self.kind is PatternKind.ANY:
            shape = "*"
        elif self.kind is PatternKind.EXACT:
            shape = self.text
        elif self.kind is PatternKind.CONTAINS:
            shape = f"*{self.text}*"
        else:
            shape = f"{self.prefix}*{self.suffix}"
        return f"{self.type_name}.{shape}" if self.type_name else shape


__all__ = ["Pattern", "PatternKind"]
