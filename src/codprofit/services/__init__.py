from .auth_service import StaticIdentity
from .aggregation_service import AggregationService
from .country_service import CountryService
from .entity_store import EntityStore
from .excel_service import ExcelService
from .expense_service import ExpenseService
from .fx_service import RateLookupService
from .import_service import ImportService
from .product_service import ProductService
from .reporting_service import ReportingService
from .sales_service import SalesService

__all__ = [
    "StaticIdentity",
    "AggregationService",
    "CountryService",
    "EntityStore",
    "ExcelService",
    "ExpenseService",
    "RateLookupService",
    "ImportService",
    "ProductService",
    "ReportingService",
    "SalesService",
]
