class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class NotFoundError(AppError):
    pass


class DuplicateRecordError(AppError):
    def __init__(self, message: str, existing_id: str | None = None):
        super().__init__(message)
        self.existing_id = existing_id


class CascadeConfirmationRequired(AppError):
    """Product still has sales/expenses; the caller must confirm the cascade."""

    def __init__(self, product_id: str, sales: int, expenses: int):
        super().__init__(
            f"Product {product_id} has {sales} sale(s) and {expenses} expense(s). Confirm to delete them too."
        )
        self.product_id = product_id
        self.sales = sales
        self.expenses = expenses


class PrimaryCountryError(AppError):
    pass


class ConfigurationError(AppError):
    pass


class AuthorizationError(AppError):
    pass


class RateUnavailableError(AppError):
    pass
