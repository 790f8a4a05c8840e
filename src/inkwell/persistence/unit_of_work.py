"""
Unit of Work batching persistence operations until flush.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from ..core.model import Model


class UnitOfWork:
    """
    Tracks new, dirty, and deleted objects within a session.

    Lists rather than sets keep flush order equal to registration order, so
    parents added before their children are inserted first.
    """

    def __init__(self) -> None:
        self.new: List[Model] = []
        self.dirty: List[Model] = []
        self.deleted: List[Model] = []

    # Registration methods ----------------------------------------------
    def register_new(self, instance: Model) -> None:
        if not self._contains(self.new, instance):
            self.new.append(instance)

    def register_dirty(self, instance: Model) -> None:
        if self._contains(self.new, instance) or self._contains(self.deleted, instance):
            return
        if not self._contains(self.dirty, instance):
            self.dirty.append(instance)

    def register_deleted(self, instance: Model) -> None:
        self.new = [obj for obj in self.new if obj is not instance]
        self.dirty = [obj for obj in self.dirty if obj is not instance]
        if not self._contains(self.deleted, instance):
            self.deleted.append(instance)

    def collect_dirty(self, candidates: Iterable[Model]) -> None:
        for instance in candidates:
            if instance.is_dirty():
                self.register_dirty(instance)

    def snapshot(self) -> Tuple[List[Model], List[Model], List[Model]]:
        return list(self.new), list(self.dirty), list(self.deleted)

    def restore(self, snapshot: Tuple[List[Model], List[Model], List[Model]]) -> None:
        new, dirty, deleted = snapshot
        self.new, self.dirty, self.deleted = list(new), list(dirty), list(deleted)

    def clear(self) -> None:
        self.new.clear()
        self.dirty.clear()
        self.deleted.clear()

    def __bool__(self) -> bool:
        return bool(self.new or self.dirty or self.deleted)

    @staticmethod
    def _contains(bucket: List[Model], instance: Model) -> bool:
        return any(obj is instance for obj in bucket)
