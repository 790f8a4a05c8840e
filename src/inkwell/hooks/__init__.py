"""
Lifecycle hooks for Inkwell models.
"""

from .dispatcher import LIFECYCLE_EVENTS, HookDispatcher, HookError

__all__ = ["HookDispatcher", "HookError", "LIFECYCLE_EVENTS"]
