from __future__ import annotations

import re
from typing import Iterable, Optional

from codprofit.domain.models import Expense, Sale

SaleKey = tuple[str, float, str, str]
ExpenseKey = tuple[str, float, str]


def normalize_phone(phone: object) -> str:
    return re.sub(r"[^\d+]", "", str(phone or ""))


def sale_key(sale: Sale) -> SaleKey:
    return (sale.date, round(float(sale.total_price), 2), normalize_phone(sale.phone), sale.product_id)


def expense_key(expense: Expense) -> ExpenseKey:
    label = (expense.platform or expense.name or "").strip().lower()
    return (expense.date, round(float(expense.amount), 2), label)


def find_duplicate_sale(candidate: Sale, existing: Iterable[Sale]) -> Optional[Sale]:
    key = sale_key(candidate)
    for s in existing:
        if s.id != candidate.id and sale_key(s) == key:
            return s
    return None


def find_duplicate_expense(candidate: Expense, existing: Iterable[Expense]) -> Optional[Expense]:
    key = expense_key(candidate)
    for e in existing:
        if e.id != candidate.id and expense_key(e) == key:
            return e
    return None
