from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional

from codprofit.config import AppSettings
from codprofit.domain.models import CountrySettings, DisplayCurrency, Expense, ExpenseType, Product, Sale
from codprofit.services.currency_service import display_currency_code, local_to_display_rate, usd_to_display_rate
from codprofit.services.filter_service import ALL, RecordFilter

log = logging.getLogger(__name__)


def _money(value: float) -> float:
    return round(float(value), 2)


def _pct(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return round(numerator / denominator * 100, 2)


@dataclass(frozen=True)
class ProfitSummary:
    currency_code: str
    total_sales: float
    total_service_fees: float
    total_stock_cost: float
    total_ads: float
    total_fixed: float
    total_test: float
    profit: float
    margin_pct: float
    order_count: int
    units_sold: int
    status_counts: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class DailyPoint:
    date: str
    sales: float
    profit: float


@dataclass(frozen=True)
class ProductPerformance:
    product_id: str
    name: str
    units: int
    orders: int
    revenue: float
    cost_of_goods: float
    fees: float
    ads: float
    other_charges: float
    profit: float
    margin_pct: float
    roi_pct: float


class _Rates:
    """Per-call rate lookup; the USD rate is resolved once, local rates per country code."""

    def __init__(self, countries: list[CountrySettings], display: DisplayCurrency, fallback: float | None):
        self.countries = countries
        self.display = display
        self.fallback = fallback
        self.usd = usd_to_display_rate(display, countries, fallback)
        self._local: dict[str, float] = {}

    def local(self, country_code: str) -> float:
        if country_code not in self._local:
            self._local[country_code] = local_to_display_rate(country_code, self.display, self.countries, self.fallback)
        return self._local[country_code]


def _sale_parts(sale: Sale, products: dict[str, Product], rates: _Rates) -> tuple[float, float, float]:
    """(sales, fees, stock cost) of one sale in display currency."""
    local = rates.local(sale.country)
    product = products.get(sale.product_id)
    cost = product.unit_cost_usd * int(sale.quantity) * rates.usd if product else 0.0
    return float(sale.total_price) * local, float(sale.delivery_price) * local, cost


def summarize(
    sales: Iterable[Sale],
    expenses: Iterable[Expense],
    products: Iterable[Product],
    countries: list[CountrySettings],
    display: DisplayCurrency,
    record_filter: Optional[RecordFilter] = None,
    fallback_primary_rate: float | None = None,
) -> ProfitSummary:
    record_filter = record_filter or RecordFilter()
    rates = _Rates(countries, display, fallback_primary_rate)
    by_id = {p.id: p for p in products}

    total_sales = total_fees = total_cost = 0.0
    units = orders = 0
    statuses: Counter[str] = Counter()
    for s in sales:
        if not record_filter.matches(s):
            continue
        sale_value, fees, cost = _sale_parts(s, by_id, rates)
        total_sales += sale_value
        total_fees += fees
        total_cost += cost
        units += int(s.quantity)
        orders += 1
        statuses[s.status.value] += 1

    spend = {t: 0.0 for t in ExpenseType}
    for e in expenses:
        if not record_filter.matches(e):
            continue
        spend[e.type] += float(e.amount) * rates.usd

    profit = (
        total_sales
        - total_cost
        - total_fees
        - spend[ExpenseType.ADS]
        - spend[ExpenseType.FIXED]
        - spend[ExpenseType.TEST]
    )
    return ProfitSummary(
        currency_code=display_currency_code(display, countries),
        total_sales=_money(total_sales),
        total_service_fees=_money(total_fees),
        total_stock_cost=_money(total_cost),
        total_ads=_money(spend[ExpenseType.ADS]),
        total_fixed=_money(spend[ExpenseType.FIXED]),
        total_test=_money(spend[ExpenseType.TEST]),
        profit=_money(profit),
        margin_pct=_pct(profit, total_sales),
        order_count=orders,
        units_sold=units,
        status_counts=dict(statuses),
    )


def daily_series(
    sales: Iterable[Sale],
    expenses: Iterable[Expense],
    products: Iterable[Product],
    countries: list[CountrySettings],
    display: DisplayCurrency,
    record_filter: Optional[RecordFilter] = None,
    fallback_primary_rate: float | None = None,
) -> list[DailyPoint]:
    record_filter = record_filter or RecordFilter()
    rates = _Rates(countries, display, fallback_primary_rate)
    by_id = {p.id: p for p in products}

    buckets: dict[str, list[float]] = {}
    for s in sales:
        if not record_filter.matches(s):
            continue
        sale_value, fees, cost = _sale_parts(s, by_id, rates)
        day = buckets.setdefault(s.date, [0.0, 0.0])
        day[0] += sale_value
        day[1] += sale_value - cost - fees

    for e in expenses:
        if not record_filter.matches(e):
            continue
        day = buckets.setdefault(e.date, [0.0, 0.0])
        day[1] -= float(e.amount) * rates.usd

    return [DailyPoint(date=d, sales=_money(v[0]), profit=_money(v[1])) for d, v in sorted(buckets.items())]


def product_analysis(
    sales: Iterable[Sale],
    expenses: Iterable[Expense],
    products: Iterable[Product],
    countries: list[CountrySettings],
    display: DisplayCurrency,
    record_filter: Optional[RecordFilter] = None,
    fallback_primary_rate: float | None = None,
) -> list[ProductPerformance]:
    """Per-product revenue, costs and profit, sorted by descending profit.

    ``record_filter.product`` selects the scope: ``"all"`` analyses every
    product, a product id analyses only that one. ROI is profit over the
    spend basis (cost of goods, ads and other charges).
    """
    record_filter = record_filter or RecordFilter()
    rates = _Rates(countries, display, fallback_primary_rate)
    by_id = {p.id: p for p in products}
    scope = [p for p in by_id.values() if record_filter.product in (ALL, p.id)]

    acc: dict[str, dict[str, float]] = {
        p.id: {"units": 0, "orders": 0, "revenue": 0.0, "cogs": 0.0, "fees": 0.0, "ads": 0.0, "other": 0.0}
        for p in scope
    }

    for s in sales:
        row = acc.get(s.product_id)
        if row is None or not record_filter.matches(s):
            continue
        sale_value, fees, cost = _sale_parts(s, by_id, rates)
        row["units"] += int(s.quantity)
        row["orders"] += 1
        row["revenue"] += sale_value
        row["fees"] += fees
        row["cogs"] += cost

    for e in expenses:
        row = acc.get(e.product_id or "")
        if row is None or not record_filter.matches(e):
            continue
        key = "ads" if e.type is ExpenseType.ADS else "other"
        row[key] += float(e.amount) * rates.usd

    results = []
    for p in scope:
        row = acc[p.id]
        profit = row["revenue"] - row["cogs"] - row["fees"] - row["ads"] - row["other"]
        basis = row["cogs"] + row["ads"] + row["other"]
        results.append(
            ProductPerformance(
                product_id=p.id,
                name=p.name,
                units=int(row["units"]),
                orders=int(row["orders"]),
                revenue=_money(row["revenue"]),
                cost_of_goods=_money(row["cogs"]),
                fees=_money(row["fees"]),
                ads=_money(row["ads"]),
                other_charges=_money(row["other"]),
                profit=_money(profit),
                margin_pct=_pct(profit, row["revenue"]),
                roi_pct=_pct(profit, basis),
            )
        )
    results.sort(key=lambda r: r.profit, reverse=True)
    return results


class AggregationService:
    """Recomputes dashboard figures from the current store state on demand."""

    def __init__(self, store, settings: AppSettings | None = None):
        self.store = store
        self.settings = settings or AppSettings()
        self._cache: dict[tuple, object] = {}
        self._cache_version = -1

    def _cached(self, name: str, record_filter: RecordFilter, display: DisplayCurrency, compute):
        if self._cache_version != self.store.version:
            self._cache.clear()
            self._cache_version = self.store.version
        key = (name, record_filter, display)
        if key not in self._cache:
            log.debug("aggregate_recomputed name=%s version=%s display=%s", name, self.store.version, display.value)
            self._cache[key] = compute()
        return self._cache[key]

    def _args(self, display: DisplayCurrency):
        return (self.store.sales, self.store.expenses, self.store.products, self.store.countries, display)

    def summary(self, record_filter: RecordFilter | None = None, display: DisplayCurrency | None = None) -> ProfitSummary:
        record_filter = record_filter or RecordFilter()
        display = display or self.settings.display_currency
        return self._cached(
            "summary",
            record_filter,
            display,
            lambda: summarize(*self._args(display), record_filter, self.settings.fallback_primary_rate),
        )

    def daily(self, record_filter: RecordFilter | None = None, display: DisplayCurrency | None = None) -> list[DailyPoint]:
        record_filter = record_filter or RecordFilter()
        display = display or self.settings.display_currency
        return self._cached(
            "daily",
            record_filter,
            display,
            lambda: daily_series(*self._args(display), record_filter, self.settings.fallback_primary_rate),
        )

    def products(
        self, record_filter: RecordFilter | None = None, display: DisplayCurrency | None = None
    ) -> list[ProductPerformance]:
        record_filter = record_filter or RecordFilter()
        display = display or self.settings.display_currency
        return self._cached(
            "products",
            record_filter,
            display,
            lambda: product_analysis(*self._args(display), record_filter, self.settings.fallback_primary_rate),
        )
