from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class OrderStatus(str, Enum):
    PROCESSED = "PROCESSED"
    DELIVERED = "DELIVERED"
    PAID = "PAID"
    RETURNED = "RETURNED"
    CANCELED = "CANCELED"

    @classmethod
    def parse(cls, value: object, default: "OrderStatus | None" = None) -> "OrderStatus":
        text = str(value or "").strip().upper()
        try:
            return cls(text)
        except ValueError:
            return default or cls.PROCESSED


class ExpenseType(str, Enum):
    ADS = "ADS"
    FIXED = "FIXED"
    TEST = "TEST"


class DisplayCurrency(str, Enum):
    USD = "USD"
    PRIMARY = "PRIMARY"


def _opt_str(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text != "" else None


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price_production: float
    price_shipping: float
    countries: tuple[str, ...] = ()
    note: Optional[str] = None
    image: Optional[str] = None

    @property
    def unit_cost_usd(self) -> float:
        return float(self.price_production) + float(self.price_shipping)

    def to_record(self) -> dict[str, Any]:
        rec = asdict(self)
        rec["countries"] = list(self.countries)
        return rec

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "Product":
        countries = rec.get("countries") or ()
        if isinstance(countries, str):
            countries = (countries,)
        return cls(
            id=str(rec["id"]),
            name=str(rec.get("name") or ""),
            price_production=float(rec.get("price_production") or 0),
            price_shipping=float(rec.get("price_shipping") or 0),
            countries=tuple(str(c) for c in countries),
            note=_opt_str(rec.get("note")),
            image=_opt_str(rec.get("image")),
        )


@dataclass(frozen=True)
class Sale:
    id: str
    date: str
    full_name: str
    phone: str
    product_id: str
    quantity: int
    total_price: float
    delivery_price: float
    status: OrderStatus
    country: str

    @property
    def net_local(self) -> float:
        return float(self.total_price) - float(self.delivery_price)

    def to_record(self) -> dict[str, Any]:
        rec = asdict(self)
        rec["status"] = self.status.value
        return rec

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "Sale":
        return cls(
            id=str(rec["id"]),
            date=str(rec["date"]),
            full_name=str(rec.get("full_name") or ""),
            phone=str(rec.get("phone") or ""),
            product_id=str(rec.get("product_id") or ""),
            quantity=int(rec.get("quantity") or 1),
            total_price=float(rec.get("total_price") or 0),
            delivery_price=float(rec.get("delivery_price") or 0),
            status=OrderStatus.parse(rec.get("status")),
            country=str(rec.get("country") or ""),
        )


@dataclass(frozen=True)
class Expense:
    id: str
    date: str
    amount: float
    type: ExpenseType
    country: str
    platform: Optional[str] = None
    name: Optional[str] = None
    product_id: Optional[str] = None
    note: Optional[str] = None

    @property
    def label(self) -> str:
        if self.type is ExpenseType.FIXED:
            return self.name or self.platform or ""
        return self.platform or self.name or ""

    def to_record(self) -> dict[str, Any]:
        rec = asdict(self)
        rec["type"] = self.type.value
        return rec

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "Expense":
        return cls(
            id=str(rec["id"]),
            date=str(rec["date"]),
            amount=float(rec.get("amount") or 0),
            type=ExpenseType(str(rec.get("type") or "ADS").upper()),
            country=str(rec.get("country") or ""),
            platform=_opt_str(rec.get("platform")),
            name=_opt_str(rec.get("name")),
            product_id=_opt_str(rec.get("product_id")),
            note=_opt_str(rec.get("note")),
        )


@dataclass(frozen=True)
class CountrySettings:
    id: str
    code: str
    name: str
    currency_code: str
    exchange_rate_to_usd: float
    service_fee: float = 0.0
    service_fee_percentage: float = 0.0
    is_primary: bool = False

    def to_record(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "CountrySettings":
        return cls(
            id=str(rec["id"]),
            code=str(rec.get("code") or ""),
            name=str(rec.get("name") or ""),
            currency_code=str(rec.get("currency_code") or ""),
            exchange_rate_to_usd=float(rec.get("exchange_rate_to_usd") or 0),
            service_fee=float(rec.get("service_fee") or 0),
            service_fee_percentage=float(rec.get("service_fee_percentage") or 0),
            is_primary=bool(rec.get("is_primary")),
        )
