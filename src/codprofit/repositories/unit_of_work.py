from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from codprofit.repositories.contracts import Record


@dataclass
class BufferedUnitOfWork:
    """Collects writes and hands them to ``apply`` only when the block exits cleanly.

    Adapters without native transactions use this so a failing batch leaves
    storage untouched.
    """

    apply: Callable[[list[tuple[str, str, str, Record | None]]], None]
    ops: list[tuple[str, str, str, Record | None]] = field(default_factory=list)

    def __enter__(self) -> "BufferedUnitOfWork":
        self.ops = []
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None and self.ops:
            self.apply(self.ops)
        self.ops = []
        return None

    def create(self, kind: str, record: Record) -> None:
        self.ops.append(("create", kind, str(record["id"]), dict(record)))

    def update(self, kind: str, record_id: str, record: Record) -> None:
        self.ops.append(("update", kind, str(record_id), dict(record)))

    def delete(self, kind: str, record_id: str) -> None:
        self.ops.append(("delete", kind, str(record_id), None))
