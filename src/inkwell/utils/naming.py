"""
Naming utilities for Inkwell.
"""

import re


_FIRST_CAP_RE = re.compile("(.)([A-Z][a-z]+)")
_ALL_CAP_RE = re.compile("([a-z0-9])([A-Z])")


def camel_to_snake(name: str) -> str:
    """
    Convert ``CamelCase`` names to ``snake_case`` for table naming.
    """
    step1 = _FIRST_CAP_RE.sub(r"\1_\2", name)
    snake = _ALL_CAP_RE.sub(r"\1_\2", step1).lower()
    return snake


def humanize(name: str) -> str:
    """
    Turn an attribute name into a label for messages: ``post_id`` -> ``Post``.
    """
    if name.endswith("_id"):
        name = name[:-3]
    words = name.replace("_", " ").strip()
    if not words:
        return words
    return words[0].upper() + words[1:]
