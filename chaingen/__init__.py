"""Method-surface composition for Python classes.

A class composes others through annotated attributes; chaingen exposes the
children's methods on the parent through a generated mixin.
"""

from .config import ChaingenConfig, ConfigError, load_config
from .context import ResolutionContext, UnwrapRegistry
from .errors import (
    ChaingenError,
    DiscoveryError,
    EmissionError,
    ModifierSyntaxError,
    NamingConflictError,
)
from .graph import TypeGraph, TypeGraphBuilder
from .orchestrator import GenerationOutcome, Orchestrator
from .resolver import SurfaceResolver

__all__ = [
    "ChaingenConfig",
    "ChaingenError",
    "ConfigError",
    "DiscoveryError",
    "EmissionError",
    "GenerationOutcome",
    "ModifierSyntaxError",
    "NamingConflictError",
    "Orchestrator",
    "ResolutionContext",
    "SurfaceResolver",
    "TypeGraph",
    "TypeGraphBuilder",
    "UnwrapRegistry",
    "load_config",
]
