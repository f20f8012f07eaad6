from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from codprofit.config import AppSettings
from codprofit.repositories.contracts import IdentityProvider, PersistenceAdapter
from codprofit.repositories.memory_repo import InMemoryRepository
from codprofit.repositories.sqlite_repo import SqliteRepository
from codprofit.services.aggregation_service import AggregationService
from codprofit.services.country_service import CountryService
from codprofit.services.entity_store import EntityStore
from codprofit.services.excel_service import ExcelService
from codprofit.services.expense_service import ExpenseService
from codprofit.services.fx_service import RateLookupService
from codprofit.services.import_service import ImportService
from codprofit.services.product_service import ProductService
from codprofit.services.reporting_service import ReportingService
from codprofit.services.sales_service import SalesService


@dataclass(frozen=True)
class AppContainer:
    settings: AppSettings
    store: EntityStore
    products: ProductService
    sales: SalesService
    expenses: ExpenseService
    countries: CountryService
    aggregation: AggregationService
    imports: ImportService
    excel: ExcelService
    reporting: ReportingService
    rates: RateLookupService


def build_container(
    db_path: Path | str | None = None,
    settings: AppSettings | None = None,
    identity: IdentityProvider | None = None,
    adapter: PersistenceAdapter | None = None,
) -> AppContainer:
    settings = settings or AppSettings()
    if adapter is None:
        if db_path is None:
            adapter = InMemoryRepository()
        else:
            repo = SqliteRepository(db_path)
            repo.init_db()
            adapter = repo

    store = EntityStore(adapter, identity=identity)
    store.load()

    rates = RateLookupService()
    aggregation = AggregationService(store, settings)

    return AppContainer(
        settings=settings,
        store=store,
        products=ProductService(store),
        sales=SalesService(store),
        expenses=ExpenseService(store),
        countries=CountryService(store, rates),
        aggregation=aggregation,
        imports=ImportService(store),
        excel=ExcelService(),
        reporting=ReportingService(aggregation),
        rates=rates,
    )
