from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Optional

from codprofit.domain.errors import DuplicateRecordError, NotFoundError, ValidationError
from codprofit.domain.models import Expense, ExpenseType
from codprofit.services._validation import require_iso_date, require_non_negative
from codprofit.services.duplicates import find_duplicate_expense

log = logging.getLogger(__name__)


class ExpenseService:
    def __init__(self, store):
        self.store = store

    def _prepare(self, expense: Expense) -> Expense:
        platform = (expense.platform or "").strip() or None
        name = (expense.name or "").strip() or None
        if expense.type is ExpenseType.FIXED and not name:
            raise ValidationError("Fixed charges need a description.")
        product_id = expense.product_id or None
        if product_id and self.store.get("products", product_id) is None:
            raise ValidationError("Linked product does not exist.")
        return replace(
            expense,
            date=require_iso_date(expense.date),
            amount=require_non_negative(expense.amount, "Amount"),
            platform=platform,
            name=name,
            product_id=product_id,
            note=(expense.note or "").strip() or None,
        )

    def _check_duplicate(self, expense: Expense, allow_duplicate: bool) -> None:
        if allow_duplicate:
            return
        dup = find_duplicate_expense(expense, self.store.expenses)
        if dup is not None:
            raise DuplicateRecordError(
                f"A {dup.type.value} expense of {expense.amount:.2f} for {expense.label or 'this entry'} "
                f"already exists on {expense.date}.",
                existing_id=dup.id,
            )

    def create_expense(
        self,
        date: str,
        amount: float,
        expense_type: ExpenseType,
        country: str,
        platform: Optional[str] = None,
        name: Optional[str] = None,
        product_id: Optional[str] = None,
        note: Optional[str] = None,
        allow_duplicate: bool = False,
    ) -> Expense:
        expense = self._prepare(
            Expense(
                id=uuid.uuid4().hex,
                date=date,
                amount=amount,
                type=ExpenseType(expense_type),
                country=country,
                platform=platform,
                name=name,
                product_id=product_id,
                note=note,
            )
        )
        self._check_duplicate(expense, allow_duplicate)
        self.store.add("expenses", expense)
        log.info("expense_created id=%s type=%s amount=%.2f", expense.id, expense.type.value, expense.amount)
        return expense

    def update_expense(self, expense: Expense, allow_duplicate: bool = False) -> Expense:
        if self.store.get("expenses", expense.id) is None:
            raise NotFoundError("Expense not found.")
        expense = self._prepare(expense)
        self._check_duplicate(expense, allow_duplicate)
        return self.store.update("expenses", expense)

    def delete_expense(self, expense_id: str) -> None:
        self.store.delete("expenses", expense_id)

    def list_by_type(self, expense_type: ExpenseType) -> list[Expense]:
        return sorted(
            (e for e in self.store.expenses if e.type is expense_type),
            key=lambda e: e.date,
            reverse=True,
        )
