"""
Transaction manager mapping nested scopes onto savepoints.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional

from ..adapters.base import DatabaseAdapter
from ..dialects.base import Dialect
from ..utils import get_logger


class TransactionError(RuntimeError):
    pass


@dataclass
class _Scope:
    # None for the outermost scope.
    savepoint: Optional[str]
    undo: List[Callable[[], None]] = field(default_factory=list)


class TransactionManager:
    """
    Tracks open transaction scopes for one adapter.

    The outermost scope is a real transaction; every scope opened inside it
    is a savepoint named ``sp_<n>``. ``depth`` is the number of open scopes.

    Callbacks registered with :meth:`on_rollback` revert in-memory state
    written inside a scope. Rolling the scope back runs them newest first;
    committing a savepoint hands them to the enclosing scope, and committing
    the outermost scope drops them.
    """

    def __init__(self, adapter: DatabaseAdapter, dialect: Dialect) -> None:
        self.adapter = adapter
        self.dialect = dialect
        self._scopes: List[_Scope] = []
        self._savepoints_issued = 0
        self.logger = get_logger("persistence.transaction")

    @property
    def depth(self) -> int:
        return len(self._scopes)

    @property
    def active(self) -> bool:
        return self.depth > 0

    def begin(self) -> None:
        if not self._scopes:
            self.adapter.begin()
            self._scopes.append(_Scope(None))
            return
        if not self.dialect.capabilities.supports_savepoints:
            raise TransactionError(f"{self.dialect.name} cannot nest transactions.")
        self._savepoints_issued += 1
        savepoint = f"sp_{self._savepoints_issued}"
        self.adapter.execute(f"SAVEPOINT {savepoint}")
        self._scopes.append(_Scope(savepoint))
        self.logger.debug("Opened savepoint %s at depth %d", savepoint, self.depth)

    def on_rollback(self, callback: Callable[[], None]) -> None:
        """
        Run ``callback`` if the innermost open scope is rolled back.

        Outside a transaction the write is already durable, so nothing is
        recorded.
        """
        if self._scopes:
            self._scopes[-1].undo.append(callback)

    def commit(self) -> None:
        scope = self._close_scope("commit")
        if scope.savepoint is None:
            self.adapter.commit()
            return
        self.adapter.execute(f"RELEASE SAVEPOINT {scope.savepoint}")
        self._scopes[-1].undo.extend(scope.undo)

    def rollback(self) -> None:
        scope = self._close_scope("roll back")
        try:
            if scope.savepoint is None:
                self.adapter.rollback()
            else:
                self.adapter.execute(f"ROLLBACK TO SAVEPOINT {scope.savepoint}")
                self.adapter.execute(f"RELEASE SAVEPOINT {scope.savepoint}")
                self.logger.debug("Rolled back to savepoint %s", scope.savepoint)
        finally:
            self._run_undo(scope)

    def reset(self) -> None:
        """
        Forget open scopes without touching the database, reverting the
        in-memory state written inside them.
        """
        while self._scopes:
            self._run_undo(self._scopes.pop())

    @contextmanager
    def atomic(self) -> Iterator[None]:
        self.begin()
        try:
            yield
        except BaseException:
            self.rollback()
            raise
        self.commit()

    def _close_scope(self, action: str) -> _Scope:
        if not self._scopes:
            raise TransactionError(f"No active transaction to {action}.")
        return self._scopes.pop()

    def _run_undo(self, scope: _Scope) -> None:
        for callback in reversed(scope.undo):
            callback()
        if scope.undo:
            self.logger.debug("Reverted %d in-memory write(s)", len(scope.undo))
        scope.undo.clear()
