"""
Boolean filter expressions for querysets.
"""

from __future__ import annotations

from typing import Any, List, Tuple, Union

AND = "AND"
OR = "OR"

Lookup = Tuple[str, Any]


class Q:
    """
    Filter condition tree.

    Keyword arguments become ``field__lookup=value`` leaves joined with AND.
    ``&`` and ``|`` build a new node over copies of both operands; ``~``
    negates a copy. An empty Q matches everything and disappears when
    combined.
    """

    def __init__(self, *children: Union["Q", Lookup], **lookups: Any) -> None:
        self.children: List[Union["Q", Lookup]] = [*children, *lookups.items()]
        self.connector = AND
        self.negated = False

    def is_empty(self) -> bool:
        return not self.children

    def copy(self) -> "Q":
        node = Q(*self.children)
        node.connector = self.connector
        node.negated = self.negated
        return node

    def __and__(self, other: "Q") -> "Q":
        return self._join(other, AND)

    def __or__(self, other: "Q") -> "Q":
        return self._join(other, OR)

    def __invert__(self) -> "Q":
        node = self.copy()
        node.negated = not self.negated
        return node

    def __repr__(self) -> str:
        prefix = "NOT " if self.negated else ""
        return f"<Q {prefix}{self.connector} {self.children!r}>"

    def _join(self, other: "Q", connector: str) -> "Q":
        if not isinstance(other, Q):
            return NotImplemented
        if other.is_empty():
            return self.copy()
        if self.is_empty():
            return other.copy()
        node = Q(self.copy(), other.copy())
        node.connector = connector
        return node
