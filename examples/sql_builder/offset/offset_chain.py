# Code generated by chaingen. DO NOT EDIT.
# Source: offset.py

from __future__ import annotations

import copy as _copy
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import sql_builder.offset.offset as offset


class OffsetBuilderChain:
    """Operations composed onto OffsetBuilder."""

    def limit(self, count: int) -> offset.OffsetBuilder:
        """Cap the number of returned rows."""
        _clone = _copy.copy(self)
        _clone.limits = self.limits.limit(count)
        return _clone
