from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Iterable, Optional

from codprofit.domain.errors import CascadeConfirmationRequired, NotFoundError, ValidationError
from codprofit.domain.models import Product
from codprofit.services._validation import require_non_negative

log = logging.getLogger(__name__)


class ProductService:
    def __init__(self, store):
        self.store = store

    def list_products(self) -> list[Product]:
        return sorted(self.store.products, key=lambda p: p.name.lower())

    def get_product(self, product_id: str) -> Product:
        p = self.store.get("products", product_id)
        if not p:
            raise NotFoundError("Product not found.")
        return p

    def find_by_name(self, name: str) -> Optional[Product]:
        needle = (name or "").strip().lower()
        for p in self.store.products:
            if p.name.strip().lower() == needle:
                return p
        return None

    def _validated(self, product: Product) -> Product:
        name = (product.name or "").strip()
        if not name:
            raise ValidationError("Product name is required.")
        return replace(
            product,
            name=name,
            price_production=require_non_negative(product.price_production, "Production cost"),
            price_shipping=require_non_negative(product.price_shipping, "Shipping cost"),
            countries=tuple(dict.fromkeys(c.strip() for c in product.countries if c and c.strip())),
        )

    def add_product(
        self,
        name: str,
        price_production: float,
        price_shipping: float,
        countries: Iterable[str] = (),
        note: Optional[str] = None,
        image: Optional[str] = None,
    ) -> Product:
        product = self._validated(
            Product(
                id=uuid.uuid4().hex,
                name=name,
                price_production=price_production,
                price_shipping=price_shipping,
                countries=tuple(countries),
                note=note,
                image=image,
            )
        )
        return self.store.add("products", product)

    def update_product(self, product: Product) -> Product:
        self.get_product(product.id)
        return self.store.update("products", self._validated(product))

    def delete_product(self, product_id: str, confirmed: bool = False) -> tuple[int, int]:
        """Delete a product and, once confirmed, every sale and expense linked to it.

        Without confirmation a product with dependents raises
        CascadeConfirmationRequired and nothing is removed.
        """
        self.get_product(product_id)
        sales, expenses = self.store.dependents_of(product_id)
        if (sales or expenses) and not confirmed:
            raise CascadeConfirmationRequired(product_id, len(sales), len(expenses))
        return self.store.delete_product_cascade(product_id)
