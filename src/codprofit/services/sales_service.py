from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Optional

from codprofit.domain.errors import DuplicateRecordError, NotFoundError, ValidationError
from codprofit.domain.models import OrderStatus, Sale
from codprofit.services._validation import require_iso_date, require_non_negative
from codprofit.services.duplicates import find_duplicate_sale
from codprofit.services.fee_service import calculate_service_fee

log = logging.getLogger("codprofit.sales")


@dataclass(frozen=True)
class SaleRow:
    sale: Sale
    product_name: str
    net_local: float


class SalesService:
    def __init__(self, store):
        self.store = store

    def _prepare(self, sale: Sale) -> Sale:
        try:
            qty = float(sale.quantity)
        except (TypeError, ValueError) as e:
            raise ValidationError("Quantity must be a whole number.") from e
        if not qty.is_integer():
            raise ValidationError("Quantity must be a whole number.")
        quantity = int(qty)
        if quantity < 1:
            raise ValidationError("Quantity must be >= 1.")
        if not sale.product_id:
            raise ValidationError("Product is required.")
        if self.store.get("products", sale.product_id) is None:
            raise ValidationError("Product does not exist.")
        if not sale.country:
            raise ValidationError("Country is required.")
        total = require_non_negative(sale.total_price, "Total price")
        # never trust a submitted fee; always derive it from the current settings
        fee = calculate_service_fee(sale.country, total, self.store.countries)
        return replace(
            sale,
            date=require_iso_date(sale.date),
            full_name=(sale.full_name or "").strip(),
            phone=(sale.phone or "").strip(),
            quantity=quantity,
            total_price=total,
            delivery_price=fee,
        )

    def _check_duplicate(self, sale: Sale, allow_duplicate: bool) -> None:
        if allow_duplicate:
            return
        dup = find_duplicate_sale(sale, self.store.sales)
        if dup is not None:
            raise DuplicateRecordError(
                f"An order for this phone, product and total already exists on {sale.date}.",
                existing_id=dup.id,
            )

    def create_sale(
        self,
        date: str,
        full_name: str,
        phone: str,
        product_id: str,
        quantity: int,
        total_price: float,
        country: str,
        status: OrderStatus = OrderStatus.PROCESSED,
        allow_duplicate: bool = False,
    ) -> Sale:
        sale = self._prepare(
            Sale(
                id=uuid.uuid4().hex,
                date=date,
                full_name=full_name,
                phone=phone,
                product_id=product_id,
                quantity=quantity,
                total_price=total_price,
                delivery_price=0.0,
                status=status,
                country=country,
            )
        )
        self._check_duplicate(sale, allow_duplicate)
        self.store.add("sales", sale)
        log.info(
            "sale_created id=%s country=%s total=%.2f fee=%.2f",
            sale.id,
            sale.country,
            sale.total_price,
            sale.delivery_price,
        )
        return sale

    def update_sale(self, sale: Sale, allow_duplicate: bool = False) -> Sale:
        if self.store.get("sales", sale.id) is None:
            raise NotFoundError("Sale not found.")
        sale = self._prepare(sale)
        self._check_duplicate(sale, allow_duplicate)
        self.store.update("sales", sale)
        log.info("sale_updated id=%s fee=%.2f", sale.id, sale.delivery_price)
        return sale

    def set_status(self, sale_id: str, status: OrderStatus) -> Sale:
        sale = self.store.get("sales", sale_id)
        if sale is None:
            raise NotFoundError("Sale not found.")
        # fee is recomputed like on every other write
        return self.update_sale(replace(sale, status=status), allow_duplicate=True)

    def delete_sale(self, sale_id: str) -> None:
        self.store.delete("sales", sale_id)
        log.info("sale_deleted id=%s", sale_id)

    def list_sales_view(self, status: Optional[OrderStatus] = None) -> list[SaleRow]:
        """Newest first, with the product name ("Unknown" when it no longer exists)."""
        rows = []
        for s in sorted(self.store.sales, key=lambda s: s.date, reverse=True):
            if status is not None and s.status is not status:
                continue
            product = self.store.get("products", s.product_id)
            rows.append(SaleRow(sale=s, product_name=product.name if product else "Unknown", net_local=s.net_local))
        return rows
