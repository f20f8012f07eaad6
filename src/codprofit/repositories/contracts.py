from __future__ import annotations

from typing import Any, Iterable, Optional, Protocol

KINDS = ("products", "sales", "expenses", "countries")

Record = dict[str, Any]


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def create(self, kind: str, record: Record) -> None: ...
    def update(self, kind: str, record_id: str, record: Record) -> None: ...
    def delete(self, kind: str, record_id: str) -> None: ...


class PersistenceAdapter(Protocol):
    """Storage boundary. Records are plain dicts keyed by field name."""

    def list(self, kind: str) -> list[Record]: ...
    def create(self, kind: str, record: Record) -> None: ...
    def update(self, kind: str, record_id: str, record: Record) -> None: ...
    def delete(self, kind: str, record_id: str) -> None: ...
    def create_many(self, kind: str, records: Iterable[Record]) -> None: ...
    def unit_of_work(self) -> UnitOfWork: ...
    def get_document(self, key: str) -> Optional[dict]: ...
    def set_document(self, key: str, document: dict) -> None: ...


class IdentityProvider(Protocol):
    def current_user_id(self) -> Optional[str]: ...
    def is_session_valid(self) -> bool: ...
