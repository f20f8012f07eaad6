from .contracts import KINDS, IdentityProvider, PersistenceAdapter, UnitOfWork
from .memory_repo import InMemoryRepository
from .sqlite_repo import SqliteRepository

__all__ = [
    "KINDS",
    "IdentityProvider",
    "PersistenceAdapter",
    "UnitOfWork",
    "InMemoryRepository",
    "SqliteRepository",
]
