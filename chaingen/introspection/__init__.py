"""Source introspection frontends."""

from .base import ComponentInfo, EdgeInfo, Introspector, OperationInfo
from .python_ast import ANNOTATION_ATTRIBUTE, PythonSourceIntrospector

__all__ = [
    "ANNOTATION_ATTRIBUTE",
    "ComponentInfo",
    "EdgeInfo",
    "Introspector",
    "OperationInfo",
    "PythonSourceIntrospector",
]
