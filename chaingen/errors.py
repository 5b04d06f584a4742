"""Exception hierarchy raised by generation runs."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .models import Operation


class ChaingenError(RuntimeError):
    """Base class for every failure that aborts a generation run."""


class DiscoveryError(ChaingenError):
    """Raised when a root type or a declared edge's child cannot be located."""


class NamingConflictError(ChaingenError):
    """Raised when two sources contribute the same alias to one component."""

    def __init__(self, component: str, alias: str, existing: "Operation", incoming: "Operation") -> None:
        self.component = component
        self.alias = alias
        self.existing = existing
        self.incoming = incoming
        super().__init__(
            f"method naming conflict for {component}.{alias}: "
            f"{existing.describe()} and {incoming.describe()}"
        )


class ModifierSyntaxError(ChaingenError):
    """Raised for a malformed token in an edge or type annotation."""

    def __init__(self, message: str, *, edge: str, token: str) -> None:
        self.edge = edge
        self.token = token
        super().__init__(f"{edge}: invalid modifier {token!r}: {message}")


class EmissionError(ChaingenError):
    """Raised when a generated artifact cannot be written."""


__all__ = [
    "ChaingenError",
    "DiscoveryError",
    "EmissionError",
    "ModifierSyntaxError",
    "NamingConflictError",
]
