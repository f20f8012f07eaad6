from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable, Optional, TypeVar, Union

from codprofit.domain.errors import AuthorizationError, NotFoundError, PrimaryCountryError, ValidationError
from codprofit.domain.models import CountrySettings, Expense, Product, Sale
from codprofit.repositories.contracts import KINDS, IdentityProvider, PersistenceAdapter

log = logging.getLogger(__name__)

Entity = Union[Product, Sale, Expense, CountrySettings]
E = TypeVar("E", Product, Sale, Expense, CountrySettings)

_FACTORIES: dict[str, Callable[[dict], Entity]] = {
    "products": Product.from_record,
    "sales": Sale.from_record,
    "expenses": Expense.from_record,
    "countries": CountrySettings.from_record,
}


class EntityStore:
    """Authoritative in-memory collections backed by a persistence adapter.

    Every mutation is written through the adapter first and applied to the
    in-memory state only after the adapter call returns, so a failing
    storage call leaves the working set untouched. ``version`` changes on
    every successful mutation and can key derived-data caches.
    """

    def __init__(self, adapter: PersistenceAdapter, identity: Optional[IdentityProvider] = None):
        self.adapter = adapter
        self.identity = identity
        self._items: dict[str, dict[str, Entity]] = {k: {} for k in KINDS}
        self.version = 0

    # ---------- Loading / reading ----------
    def load(self) -> None:
        loaded: dict[str, dict[str, Entity]] = {}
        for kind in KINDS:
            factory = _FACTORIES[kind]
            loaded[kind] = {}
            for rec in self.adapter.list(kind):
                entity = factory(rec)
                loaded[kind][entity.id] = entity
        self._items = loaded
        self.version += 1
        log.info(
            "store_loaded products=%s sales=%s expenses=%s countries=%s",
            *(len(loaded[k]) for k in KINDS),
        )

    def list(self, kind: str) -> list:
        return list(self._bucket(kind).values())

    def get(self, kind: str, entity_id: str):
        return self._bucket(kind).get(str(entity_id))

    @property
    def products(self) -> list[Product]:
        return self.list("products")

    @property
    def sales(self) -> list[Sale]:
        return self.list("sales")

    @property
    def expenses(self) -> list[Expense]:
        return self.list("expenses")

    @property
    def countries(self) -> list[CountrySettings]:
        return self.list("countries")

    def _bucket(self, kind: str) -> dict[str, Entity]:
        if kind not in self._items:
            raise ValidationError(f"Unknown entity type: {kind}")
        return self._items[kind]

    def _require_session(self) -> None:
        if self.identity is not None and not self.identity.is_session_valid():
            raise AuthorizationError("Session expired. Sign in again.")

    def _bump(self) -> None:
        self.version += 1

    # ---------- Generic mutations ----------
    def add(self, kind: str, entity: E) -> E:
        if kind == "countries":
            return self.add_country(entity)  # type: ignore[arg-type]
        self._require_session()
        bucket = self._bucket(kind)
        if entity.id in bucket:
            raise ValidationError(f"{kind} {entity.id} already exists.")
        self.adapter.create(kind, entity.to_record())
        bucket[entity.id] = entity
        self._bump()
        return entity

    def add_many(self, kind: str, entities: Iterable[E]) -> list[E]:
        """Insert a batch in one unit of work; either every entity lands or none does."""
        self._require_session()
        batch = list(entities)
        if not batch:
            return []
        bucket = self._bucket(kind)
        ids = [e.id for e in batch]
        if len(set(ids)) != len(ids) or any(i in bucket for i in ids):
            raise ValidationError(f"Batch for {kind} contains ids that already exist.")
        if kind == "countries":
            codes = [c.code for c in bucket.values()] + [c.code for c in batch]
            if len(set(codes)) != len(codes):
                raise ValidationError("Batch contains country codes that already exist.")
            # at most one primary may come out of a bulk insert
            batch = self._normalize_primary_batch(batch)  # type: ignore[arg-type]
            demote = [c for c in bucket.values() if c.is_primary] if any(c.is_primary for c in batch) else []
        else:
            demote = []

        with self.adapter.unit_of_work() as uow:
            for old in demote:
                uow.update(kind, old.id, replace(old, is_primary=False).to_record())
            for e in batch:
                uow.create(kind, e.to_record())

        for old in demote:
            bucket[old.id] = replace(old, is_primary=False)
        for e in batch:
            bucket[e.id] = e
        self._bump()
        return batch

    def update(self, kind: str, entity: E) -> E:
        if kind == "countries":
            return self.update_country(entity)  # type: ignore[arg-type]
        self._require_session()
        bucket = self._bucket(kind)
        if entity.id not in bucket:
            raise NotFoundError(f"{kind} {entity.id} not found.")
        self.adapter.update(kind, entity.id, entity.to_record())
        bucket[entity.id] = entity
        self._bump()
        return entity

    def delete(self, kind: str, entity_id: str) -> None:
        self._require_session()
        bucket = self._bucket(kind)
        entity = bucket.get(str(entity_id))
        if entity is None:
            raise NotFoundError(f"{kind} {entity_id} not found.")
        if kind == "countries" and entity.is_primary:  # type: ignore[union-attr]
            raise PrimaryCountryError("The primary country cannot be deleted. Make another country primary first.")
        self.adapter.delete(kind, entity.id)
        del bucket[entity.id]
        self._bump()

    # ---------- Products ----------
    def dependents_of(self, product_id: str) -> tuple[list[Sale], list[Expense]]:
        sales = [s for s in self.sales if s.product_id == product_id]
        expenses = [e for e in self.expenses if e.product_id == product_id]
        return sales, expenses

    def delete_product_cascade(self, product_id: str) -> tuple[int, int]:
        self._require_session()
        products = self._bucket("products")
        if str(product_id) not in products:
            raise NotFoundError(f"products {product_id} not found.")
        sales, expenses = self.dependents_of(str(product_id))

        with self.adapter.unit_of_work() as uow:
            for s in sales:
                uow.delete("sales", s.id)
            for e in expenses:
                uow.delete("expenses", e.id)
            uow.delete("products", str(product_id))

        for s in sales:
            del self._items["sales"][s.id]
        for e in expenses:
            del self._items["expenses"][e.id]
        del products[str(product_id)]
        self._bump()
        log.info("product_deleted id=%s sales=%s expenses=%s", product_id, len(sales), len(expenses))
        return len(sales), len(expenses)

    # ---------- Countries ----------
    def primary_country(self) -> Optional[CountrySettings]:
        for c in self.countries:
            if c.is_primary:
                return c
        return None

    def add_country(self, country: CountrySettings) -> CountrySettings:
        self._require_session()
        bucket = self._bucket("countries")
        if country.id in bucket:
            raise ValidationError(f"countries {country.id} already exists.")
        if any(c.code == country.code for c in bucket.values()):
            raise ValidationError(f"Country code {country.code} already exists.")
        if not bucket:
            country = replace(country, is_primary=True)
        self._write_country(country, create=True)
        return country

    def update_country(self, country: CountrySettings) -> CountrySettings:
        self._require_session()
        bucket = self._bucket("countries")
        current = bucket.get(country.id)
        if current is None:
            raise NotFoundError(f"countries {country.id} not found.")
        if any(c.code == country.code and c.id != country.id for c in bucket.values()):
            raise ValidationError(f"Country code {country.code} already exists.")
        if current.is_primary and not country.is_primary:
            # un-flagging the only primary would leave none; keep it
            country = replace(country, is_primary=True)
        self._write_country(country, create=False)
        return country

    def _write_country(self, country: CountrySettings, create: bool) -> None:
        bucket = self._items["countries"]
        demote = [c for c in bucket.values() if c.is_primary and c.id != country.id] if country.is_primary else []

        with self.adapter.unit_of_work() as uow:
            for old in demote:
                uow.update("countries", old.id, replace(old, is_primary=False).to_record())
            if create:
                uow.create("countries", country.to_record())
            else:
                uow.update("countries", country.id, country.to_record())

        for old in demote:
            bucket[old.id] = replace(old, is_primary=False)
        bucket[country.id] = country
        self._bump()

    def _normalize_primary_batch(self, batch: list[CountrySettings]) -> list[CountrySettings]:
        has_existing = bool(self._items["countries"])
        primary_idx = next((i for i, c in enumerate(batch) if c.is_primary), None)
        if primary_idx is None and not has_existing:
            primary_idx = 0
        return [replace(c, is_primary=(i == primary_idx)) for i, c in enumerate(batch)]
