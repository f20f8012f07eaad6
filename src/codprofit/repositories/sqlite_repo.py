from __future__ import annotations

import json
import shutil
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

from codprofit.domain.errors import NotFoundError, ValidationError
from codprofit.repositories.contracts import Record

# column order per table; "id" is always the primary key
COLUMNS: dict[str, tuple[str, ...]] = {
    "products": ("id", "name", "price_production", "price_shipping", "countries", "note", "image"),
    "sales": (
        "id", "date", "full_name", "phone", "product_id", "quantity",
        "total_price", "delivery_price", "status", "country",
    ),
    "expenses": ("id", "date", "amount", "type", "platform", "name", "product_id", "country", "note"),
    "countries": (
        "id", "code", "name", "currency_code", "exchange_rate_to_usd",
        "service_fee", "service_fee_percentage", "is_primary",
    ),
}


def _to_row(kind: str, record: Record) -> tuple[Any, ...]:
    values = []
    for col in COLUMNS[kind]:
        v = record.get(col)
        if kind == "products" and col == "countries":
            v = json.dumps(list(v or []))
        elif kind == "countries" and col == "is_primary":
            v = 1 if v else 0
        values.append(v)
    return tuple(values)


def _from_row(kind: str, row: tuple[Any, ...]) -> Record:
    rec = dict(zip(COLUMNS[kind], row))
    if kind == "products":
        rec["countries"] = json.loads(rec["countries"] or "[]")
    elif kind == "countries":
        rec["is_primary"] = bool(rec["is_primary"])
    return rec


class SqliteUnitOfWork:
    """One sqlite transaction; commits on clean exit, rolls back otherwise."""

    def __init__(self, repo: "SqliteRepository"):
        self.repo = repo
        self.conn: sqlite3.Connection | None = None

    def __enter__(self) -> "SqliteUnitOfWork":
        self.conn = self.repo._conn()
        self.conn.execute("BEGIN")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.conn is None:
            raise RuntimeError("Unit of work is not active.")
        try:
            if exc_type is None:
                self.conn.commit()
            else:
                self.conn.rollback()
        finally:
            self.conn.close()
            self.conn = None
        return None

    def _cur(self) -> sqlite3.Cursor:
        if self.conn is None:
            raise RuntimeError("Unit of work is not active.")
        return self.conn.cursor()

    def create(self, kind: str, record: Record) -> None:
        cols = COLUMNS[self.repo._check_kind(kind)]
        placeholders = ", ".join("?" for _ in cols)
        try:
            self._cur().execute(
                f"INSERT INTO {kind} ({', '.join(cols)}) VALUES ({placeholders})",
                _to_row(kind, record),
            )
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Cannot insert into {kind}: {e}") from e

    def update(self, kind: str, record_id: str, record: Record) -> None:
        cols = [c for c in COLUMNS[self.repo._check_kind(kind)] if c != "id"]
        assignments = ", ".join(f"{c}=?" for c in cols)
        row = dict(zip(COLUMNS[kind], _to_row(kind, record)))
        cur = self._cur()
        cur.execute(
            f"UPDATE {kind} SET {assignments} WHERE id=?",
            tuple(row[c] for c in cols) + (str(record_id),),
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"{kind} {record_id} not found.")

    def delete(self, kind: str, record_id: str) -> None:
        self._cur().execute(f"DELETE FROM {self.repo._check_kind(kind)} WHERE id=?", (str(record_id),))


class SqliteRepository:
    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, isolation_level=None)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    @staticmethod
    def _check_kind(kind: str) -> str:
        if kind not in COLUMNS:
            raise ValidationError(f"Unknown entity type: {kind}")
        return kind

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        backup_path = self._create_pre_migration_backup()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_base),
                (2, self._migration_v2_documents),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise RuntimeError(
                "Database migration failed. Original database restored from automatic backup."
            ) from exc
        finally:
            conn.close()

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS products (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            price_production REAL NOT NULL DEFAULT 0 CHECK(price_production >= 0),
            price_shipping REAL NOT NULL DEFAULT 0 CHECK(price_shipping >= 0),
            countries TEXT NOT NULL DEFAULT '[]',
            note TEXT,
            image TEXT
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS sales (
            id TEXT PRIMARY KEY,
            date TEXT NOT NULL,
            full_name TEXT,
            phone TEXT,
            product_id TEXT,
            quantity INTEGER NOT NULL DEFAULT 1 CHECK(quantity >= 1),
            total_price REAL NOT NULL DEFAULT 0,
            delivery_price REAL NOT NULL DEFAULT 0,
            status TEXT NOT NULL CHECK(status IN ('PROCESSED','DELIVERED','PAID','RETURNED','CANCELED')),
            country TEXT
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS expenses (
            id TEXT PRIMARY KEY,
            date TEXT NOT NULL,
            amount REAL NOT NULL DEFAULT 0 CHECK(amount >= 0),
            type TEXT NOT NULL CHECK(type IN ('ADS','FIXED','TEST')),
            platform TEXT,
            name TEXT,
            product_id TEXT,
            country TEXT,
            note TEXT
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS countries (
            id TEXT PRIMARY KEY,
            code TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            currency_code TEXT NOT NULL,
            exchange_rate_to_usd REAL NOT NULL DEFAULT 0 CHECK(exchange_rate_to_usd >= 0),
            service_fee REAL NOT NULL DEFAULT 0,
            service_fee_percentage REAL NOT NULL DEFAULT 0,
            is_primary INTEGER NOT NULL DEFAULT 0
        )
        """
        )

        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_date ON sales(date)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sales_product ON sales(product_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(date)")

    def _migration_v2_documents(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS documents (
                key TEXT PRIMARY KEY,
                body TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )

    # ---------- Records ----------
    def unit_of_work(self) -> SqliteUnitOfWork:
        return SqliteUnitOfWork(self)

    def list(self, kind: str) -> list[Record]:
        cols = COLUMNS[self._check_kind(kind)]
        with closing(self._conn()) as conn:
            rows = conn.execute(f"SELECT {', '.join(cols)} FROM {kind} ORDER BY rowid").fetchall()
        return [_from_row(kind, r) for r in rows]

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

    # ---------- Documents ----------
    def get_document(self, key: str) -> Optional[dict]:
        with closing(self._conn()) as conn:
            row = conn.execute("SELECT body FROM documents WHERE key = ?", (key,)).fetchone()
        return json.loads(row[0]) if row else None

    def set_document(self, key: str, document: dict) -> None:
        with closing(self._conn()) as conn:
            conn.execute(
                """
                INSERT INTO documents (key, body, updated_at) VALUES (?, ?, datetime('now'))
                ON CONFLICT(key) DO UPDATE SET body=excluded.body, updated_at=excluded.updated_at
            """,
                (key, json.dumps(document, ensure_ascii=False)),
            )

