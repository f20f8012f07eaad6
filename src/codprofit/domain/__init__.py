from .models import CountrySettings, DisplayCurrency, Expense, ExpenseType, OrderStatus, Product, Sale
from .errors import (
    AppError,
    AuthorizationError,
    CascadeConfirmationRequired,
    ConfigurationError,
    DuplicateRecordError,
    NotFoundError,
    PrimaryCountryError,
    RateUnavailableError,
    ValidationError,
)

__all__ = [
    "Product",
    "Sale",
    "Expense",
    "CountrySettings",
    "OrderStatus",
    "ExpenseType",
    "DisplayCurrency",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "DuplicateRecordError",
    "CascadeConfirmationRequired",
    "PrimaryCountryError",
    "ConfigurationError",
    "AuthorizationError",
    "RateUnavailableError",
]
