"""
Persistence layer components: sessions, repositories, unit of work, identity map.
"""

from .identity_map import IdentityMap
from .repository import Repository
from .session import SaveResult, Session, StaleInstanceError
from .transaction import TransactionError, TransactionManager
from .unit_of_work import UnitOfWork

__all__ = [
    "IdentityMap",
    "Repository",
    "SaveResult",
    "Session",
    "StaleInstanceError",
    "TransactionError",
    "TransactionManager",
    "UnitOfWork",
]
