from __future__ import annotations

import logging
import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional

from codprofit.domain.errors import ValidationError
from codprofit.domain.models import Expense, ExpenseType, OrderStatus, Sale
from codprofit.services.currency_service import find_country, find_primary
from codprofit.services.duplicates import expense_key, sale_key
from codprofit.services.fee_service import calculate_service_fee

log = logging.getLogger("codprofit.import")

SALE_FIELDS = ("Date", "Full Name", "Phone", "Product", "Quantity", "Total Price", "Status")
EXPENSE_FIELDS = ("Date", "Amount", "Type", "Platform", "Name", "Product", "Country", "Note")

MAPPING_KEYS = {
    "sales": "sales_import_mapping",
    "expenses": "expense_import_mapping",
}

# spreadsheet day 0 is 1899-12-30; 25569 days later is 1970-01-01
SPREADSHEET_EPOCH_OFFSET = 25569
_UNIX_EPOCH = datetime(1970, 1, 1)
_MAX_SERIAL = 2958465  # 9999-12-31

# number with an optional currency token before or after it, e.g. "$1,250.50", "1 250,50 DH"
_AMOUNT = re.compile(
    r"\s*(?P<pre>[^\d\s.,+\-]*)\s*"
    r"(?P<num>[+\-]?[\d.,'\s]*\d[\d.,'\s]*?)"
    r"\s*(?P<post>[^\d\s.,+\-]*)\s*"
)
_PLAIN_NUMBER = re.compile(r"[+\-]?\d+(\.\d+)?")
_CURRENCY_TOKENS = {
    "$", "€", "£", "us$", "usd", "eur", "mad", "dh", "dhs", "xaf", "xof", "cfa", "fcfa",
    "ngn", "ghs", "kes", "egp", "tnd", "dzd", "sar", "aed",
}

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%Y/%m/%d", "%d-%m-%Y", "%d.%m.%Y", "%m/%d/%Y")


@dataclass
class ImportReport:
    imported: int = 0
    skipped: int = 0
    duplicates: int = 0
    unknown_product: int = 0
    problems: list[tuple[int, str]] = field(default_factory=list)

    def skip(self, row_no: int, reason: str) -> None:
        self.skipped += 1
        self.problems.append((row_no, reason))


def serial_to_iso(serial: float) -> Optional[str]:
    if not (0 < serial <= _MAX_SERIAL):
        return None
    return (_UNIX_EPOCH + timedelta(days=serial - SPREADSHEET_EPOCH_OFFSET)).date().isoformat()


def normalize_date(raw: Any, today: Optional[date] = None) -> Optional[str]:
    """Return ``YYYY-MM-DD`` for a raw cell, or None when the cell is empty or a header.

    Unparsable values that look like data (they contain digits) fall back to today.
    """
    today = today or date.today()
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    if isinstance(raw, (int, float)):
        return serial_to_iso(float(raw)) or today.isoformat()

    text = str(raw).strip()
    if not text:
        return None
    if not any(ch.isdigit() for ch in text):
        return None
    if re.fullmatch(r"\d+(\.\d+)?", text):
        return serial_to_iso(float(text)) or today.isoformat()

    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        pass
    head = re.split(r"[ T]", text, maxsplit=1)[0]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(head, fmt).date().isoformat()
        except ValueError:
            continue
    return today.isoformat()


def parse_amount(raw: Any) -> Optional[float]:
    """Numeric value of a cell, or None when it is not a plain amount.

    Accepts grouping spaces, ``,``/``.`` as thousands or decimal separator and
    a currency symbol or code before or after the number.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None

    m = _AMOUNT.fullmatch(str(raw))
    if m is None:
        return None
    for affix in (m.group("pre"), m.group("post")):
        if affix and affix.lower() not in _CURRENCY_TOKENS:
            return None

    text = re.sub(r"[\s']", "", m.group("num"))
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        whole, _, frac = text.rpartition(",")
        if text.count(",") == 1 and len(frac) <= 2:
            text = f"{whole}.{frac}"
        else:
            text = text.replace(",", "")
    elif text.count(".") > 1:
        text = text.replace(".", "")

    if not _PLAIN_NUMBER.fullmatch(text):
        return None
    return float(text)


def _cell_text(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw).strip()


class ImportService:
    """Turns mapped spreadsheet rows into sales/expenses and bulk-inserts the accepted ones."""

    def __init__(
        self,
        store,
        id_factory: Callable[[], str] | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.store = store
        self.id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self.today = today or date.today

    # ---------- Mapping persistence ----------
    def load_mapping(self, feature: str) -> dict[str, str]:
        key = MAPPING_KEYS.get(feature)
        if key is None:
            raise ValidationError(f"Unknown import feature: {feature}")
        return dict(self.store.adapter.get_document(key) or {})

    def save_mapping(self, feature: str, mapping: Mapping[str, str]) -> None:
        key = MAPPING_KEYS.get(feature)
        if key is None:
            raise ValidationError(f"Unknown import feature: {feature}")
        allowed = SALE_FIELDS if feature == "sales" else EXPENSE_FIELDS
        unknown = [f for f in mapping if f not in allowed]
        if unknown:
            raise ValidationError(f"Unknown field(s) in mapping: {', '.join(unknown)}")
        self.store.adapter.set_document(key, {k: str(v) for k, v in mapping.items() if v})
        log.info("import_mapping_saved feature=%s fields=%s", feature, len(mapping))

    # ---------- Helpers ----------
    def _product_index(self) -> tuple[dict[str, str], set[str]]:
        by_name = {}
        for p in self.store.products:
            by_name.setdefault(p.name.strip().lower(), p.id)
        return by_name, {p.id for p in self.store.products}

    @staticmethod
    def _resolve_product(raw: Any, by_name: dict[str, str], ids: set[str]) -> Optional[str]:
        text = _cell_text(raw)
        if not text:
            return None
        if text in ids:
            return text
        return by_name.get(text.lower())

    @staticmethod
    def _getter(row: Mapping[str, Any], mapping: Mapping[str, str]):
        def get(name: str) -> Any:
            col = mapping.get(name)
            if not col:
                return None
            value = row.get(col)
            if isinstance(value, str) and not value.strip():
                return None
            return value

        return get

    # ---------- Sales ----------
    def import_sales(
        self,
        rows: Iterable[Mapping[str, Any]],
        mapping: Mapping[str, str],
        country_code: str,
    ) -> ImportReport:
        """Import sales for one country; the fee always comes from that country's settings."""
        country_code = (country_code or "").strip().upper()
        countries = self.store.countries
        if find_country(country_code, countries) is None:
            raise ValidationError(f"Unknown country for import: {country_code}")

        today = self.today()
        by_name, ids = self._product_index()
        seen = {sale_key(s) for s in self.store.sales}
        report = ImportReport()
        accepted: list[Sale] = []

        for row_no, row in enumerate(rows, start=1):
            get = self._getter(row, mapping)
            raw_date, raw_total = get("Date"), get("Total Price")
            if raw_date is None or raw_total is None:
                report.skip(row_no, "missing date or total price")
                continue

            iso = normalize_date(raw_date, today)
            total = parse_amount(raw_total)
            if iso is None or total is None:
                report.skip(row_no, "header or non-numeric total")
                continue
            if total < 0:
                report.skip(row_no, "negative total price")
                continue

            product_id = self._resolve_product(get("Product"), by_name, ids)
            if product_id is None:
                report.unknown_product += 1
                report.problems.append((row_no, f"unknown product {_cell_text(get('Product'))!r}"))
                continue

            qty = parse_amount(get("Quantity"))
            quantity = int(qty) if qty is not None and qty >= 1 else 1

            sale = Sale(
                id=self.id_factory(),
                date=iso,
                full_name=_cell_text(get("Full Name")),
                phone=_cell_text(get("Phone")),
                product_id=product_id,
                quantity=quantity,
                total_price=total,
                delivery_price=calculate_service_fee(country_code, total, countries),
                status=OrderStatus.parse(get("Status")),
                country=country_code,
            )
            key = sale_key(sale)
            if key in seen:
                report.duplicates += 1
                continue
            seen.add(key)
            accepted.append(sale)

        if accepted:
            self.store.add_many("sales", accepted)
        report.imported = len(accepted)
        self._log_report("sales", report, country=country_code)
        return report

    # ---------- Expenses ----------
    def import_expenses(
        self,
        rows: Iterable[Mapping[str, Any]],
        mapping: Mapping[str, str],
        expense_type: ExpenseType = ExpenseType.ADS,
        default_country: Optional[str] = None,
    ) -> ImportReport:
        today = self.today()
        by_name, ids = self._product_index()
        if default_country is None:
            primary = find_primary(self.store.countries)
            default_country = primary.code if primary else ""
        default_country = default_country.strip().upper()
        seen = {expense_key(e) for e in self.store.expenses}
        report = ImportReport()
        accepted: list[Expense] = []

        for row_no, row in enumerate(rows, start=1):
            get = self._getter(row, mapping)
            raw_date, raw_amount = get("Date"), get("Amount")
            if raw_date is None or raw_amount is None:
                report.skip(row_no, "missing date or amount")
                continue

            iso = normalize_date(raw_date, today)
            amount = parse_amount(raw_amount)
            if iso is None or amount is None:
                report.skip(row_no, "header or non-numeric amount")
                continue
            if amount < 0:
                report.skip(row_no, "negative amount")
                continue

            try:
                row_type = ExpenseType(_cell_text(get("Type")).upper())
            except ValueError:
                row_type = expense_type

            raw_product = get("Product")
            product_id = self._resolve_product(raw_product, by_name, ids)
            if product_id is None and raw_product is not None:
                # product is optional on expenses; keep the row unlinked
                report.unknown_product += 1

            expense = Expense(
                id=self.id_factory(),
                date=iso,
                amount=amount,
                type=row_type,
                country=_cell_text(get("Country")).upper() or default_country,
                platform=_cell_text(get("Platform")) or None,
                name=_cell_text(get("Name")) or None,
                product_id=product_id,
                note=_cell_text(get("Note")) or None,
            )
            key = expense_key(expense)
            if key in seen:
                report.duplicates += 1
                continue
            seen.add(key)
            accepted.append(expense)

        if accepted:
            self.store.add_many("expenses", accepted)
        report.imported = len(accepted)
        self._log_report("expenses", report)
        return report

    @staticmethod
    def _log_report(kind: str, report: ImportReport, country: str | None = None) -> None:
        for row_no, reason in report.problems:
            log.debug("import_row_rejected kind=%s row=%s reason=%s", kind, row_no, reason)
        log.info(
            "import_done kind=%s country=%s imported=%s skipped=%s duplicates=%s unknown_product=%s",
            kind,
            country,
            report.imported,
            report.skipped,
            report.duplicates,
            report.unknown_product,
        )
