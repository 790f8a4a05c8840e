"""
Identity map keeping one in-memory instance per stored row.
"""

from __future__ import annotations

from threading import RLock
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type

from ..core.model import Model

IdentityKey = Tuple[Type[Model], Any]


class IdentityMap:
    """
    Session-local cache of loaded and saved instances, keyed by model class
    and primary key. Unsaved instances (``pk is None``) are never stored.
    Access is guarded by a re-entrant lock so sessions may be shared by
    threads.
    """

    def __init__(self) -> None:
        self._instances: Dict[IdentityKey, Model] = {}
        self._lock = RLock()

    @staticmethod
    def key_for(instance: Model) -> Optional[IdentityKey]:
        pk = instance.pk
        return None if pk is None else (type(instance), pk)

    def add(self, instance: Model) -> None:
        key = self.key_for(instance)
        if key is not None:
            with self._lock:
                self._instances[key] = instance

    def get(self, model: Type[Model], pk: Any) -> Optional[Model]:
        if pk is None:
            return None
        with self._lock:
            return self._instances.get((model, pk))

    def remove(self, instance: Model) -> None:
        key = self.key_for(instance)
        if key is not None:
            with self._lock:
                self._instances.pop(key, None)

    def instances_of(self, model: Type[Model]) -> List[Model]:
        with self._lock:
            return [obj for (cls, _pk), obj in self._instances.items() if cls is model]

    def values(self) -> List[Model]:
        with self._lock:
            return list(self._instances.values())

    def clear(self) -> None:
        with self._lock:
            self._instances.clear()

    def __iter__(self) -> Iterator[Model]:
        return iter(self.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._instances)

    def __contains__(self, instance: Model) -> bool:
        key = self.key_for(instance)
        if key is None:
            return False
        with self._lock:
            return self._instances.get(key) is instance
