"""
Query construction APIs for Inkwell.
"""

from .compiler import SQLCompiler
from .expressions import Q
from .queryset import QuerySet

__all__ = ["Q", "QuerySet", "SQLCompiler"]
