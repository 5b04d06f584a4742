from .offset import LimitBuilder, OffsetBuilder

__all__ = ["LimitBuilder", "OffsetBuilder"]
