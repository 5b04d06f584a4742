"""Emission of generated modules."""

from .aliases import ImportTable
from .renderer import HEADER, MIXIN_SUFFIX, Artifact, ModuleRenderer

__all__ = ["Artifact", "HEADER", "ImportTable", "MIXIN_SUFFIX", "ModuleRenderer"]
