from __future__ import annotations

import copy
from typing import Iterable, Optional

from codprofit.domain.errors import NotFoundError, ValidationError
from codprofit.repositories.contracts import KINDS, Record
from codprofit.repositories.unit_of_work import BufferedUnitOfWork


class InMemoryRepository:
    def __init__(self):
        self._tables: dict[str, dict[str, Record]] = {k: {} for k in KINDS}
        self._documents: dict[str, dict] = {}

    def _table(self, kind: str) -> dict[str, Record]:
        if kind not in self._tables:
            raise ValidationError(f"Unknown entity type: {kind}")
        return self._tables[kind]

    def _apply(self, ops: list[tuple[str, str, str, Record | None]]) -> None:
        # validate the whole batch first so nothing lands on error
        staged = {k: dict(v) for k, v in self._tables.items()}
        for op, kind, record_id, record in ops:
            if kind not in staged:
                raise ValidationError(f"Unknown entity type: {kind}")
            table = staged[kind]
            if op == "create":
                if record_id in table:
                    raise ValidationError(f"Duplicate id {record_id} in {kind}.")
                table[record_id] = copy.deepcopy(record)
            elif op == "update":
                if record_id not in table:
                    raise NotFoundError(f"{kind} {record_id} not found.")
                table[record_id] = copy.deepcopy(record)
            elif op == "delete":
                table.pop(record_id, None)
        self._tables = staged

    def unit_of_work(self) -> BufferedUnitOfWork:
        return BufferedUnitOfWork(self._apply)

    def list(self, kind: str) -> list[Record]:
        return [copy.deepcopy(r) for r in self._table(kind).values()]

    def create(self, kind: str, record: Record) -> None:
        with self.unit_of_work() as uow:
            uow.create(kind, record)

    def update(self, kind: str, record_id: str, record: Record) -> None:
        with self.unit_of_work() as uow:
            uow.update(kind, record_id, record)

    def delete(self, kind: str, record_id: str) -> None:
        with self.unit_of_work() as uow:
            uow.delete(kind, record_id)

    def create_many(self, kind: str, records: Iterable[Record]) -> None:
        with self.unit_of_work() as uow:
            for rec in records:
                uow.create(kind, rec)

    def get_document(self, key: str) -> Optional[dict]:
        doc = self._documents.get(key)
        return copy.deepcopy(doc) if doc is not None else None

    def set_document(self, key: str, document: dict) -> None:
        self._documents[key] = copy.deepcopy(document)
