from datetime import date, datetime
from itertools import count

import pytest

from codprofit.domain.errors import ValidationError
from codprofit.domain.models import ExpenseType, OrderStatus, Product
from codprofit.repositories.memory_repo import InMemoryRepository
from codprofit.services.import_service import ImportService, normalize_date, parse_amount

from conftest import cameroon, make_store, morocco

TODAY = date(2024, 3, 20)
SALES_MAPPING = {
    "Date": "A",
    "Full Name": "B",
    "Phone": "C",
    "Product": "D",
    "Quantity": "E",
    "Total Price": "F",
    "Status": "G",
}


class CountingRepo(InMemoryRepository):
    def __init__(self):
        super().__init__()
        self.batches = 0

    def unit_of_work(self):
        self.batches += 1
        return super().unit_of_work()


def _rows():
    return [
        {"A": "Date", "B": "Full Name", "C": "Phone", "D": "Product", "E": "Quantity", "F": "Total Price", "G": "Status"},
        {"A": 45220, "B": "Amina", "C": "0612345678", "D": " serum ", "E": 2, "F": 499, "G": "delivered"},
        {"A": "2024-03-10", "B": "Yassine", "C": 600000000.0, "D": "SERUM", "E": "1", "F": "350"},
        {"A": "2024-03-10", "B": "Nadia", "C": "0611", "D": "Unknown thing", "F": 100},
        {"A": "2024-03-11", "B": "Omar", "C": "0622", "D": "Serum"},
    ]


def _service(adapter=None):
    ids = count(1)
    store = make_store(
        countries=[morocco(), cameroon()],
        products=[Product(id="p1", name="Serum", price_production=15, price_shipping=5)],
        adapter=adapter,
    )
    return store, ImportService(store, id_factory=lambda: f"id{next(ids)}", today=lambda: TODAY)


def test_spreadsheet_serial_dates():
    assert normalize_date(45220) == "2023-10-21"
    assert normalize_date(44927) == "2023-01-01"
    assert normalize_date(45220.75) == "2023-10-21"
    assert normalize_date("45220") == "2023-10-21"


def test_string_and_cell_dates():
    assert normalize_date("2024-03-10") == "2024-03-10"
    assert normalize_date("2024-03-10 14:22:00") == "2024-03-10"
    assert normalize_date("10/03/2024") == "2024-03-10"
    assert normalize_date("2024/03/10") == "2024-03-10"
    assert normalize_date(datetime(2024, 3, 10, 8, 30)) == "2024-03-10"
    assert normalize_date(date(2024, 3, 10)) == "2024-03-10"


def test_unparsable_dates_fall_back_to_today_and_headers_are_rejected():
    assert normalize_date("sometime 12", today=TODAY) == "2024-03-20"
    assert normalize_date("Date") is None
    assert normalize_date("  ") is None
    assert normalize_date(None) is None


def test_amount_coercion():
    assert parse_amount(499) == 499.0
    assert parse_amount("$1,250.50") == 1250.5
    assert parse_amount("1 250,50 DH") == 1250.5
    assert parse_amount("1.250,50") == 1250.5
    assert parse_amount("Total Price") is None
    assert parse_amount(None) is None


@pytest.mark.parametrize("text", ["1e3", "abc12", "12 abc", "inf", "12-3", "1,2,3,4x"])
def test_malformed_amounts_are_not_guessed(text):
    assert parse_amount(text) is None


def test_malformed_total_skips_the_row():
    store, imports = _service()
    rows = [{"A": "2024-03-10", "C": "0600", "D": "Serum", "F": "1e3"}]

    report = imports.import_sales(rows, SALES_MAPPING, "MA")

    assert (report.imported, report.skipped) == (0, 1)
    assert store.sales == []


def test_sales_import_counts_and_fees():
    store, imports = _service()

    report = imports.import_sales(_rows(), SALES_MAPPING, "CM")

    assert (report.imported, report.skipped, report.duplicates, report.unknown_product) == (2, 2, 0, 1)
    by_name = {s.full_name: s for s in store.sales}
    amina = by_name["Amina"]
    assert amina.date == "2023-10-21"
    assert amina.product_id == "p1"
    assert amina.quantity == 2
    assert amina.status is OrderStatus.DELIVERED
    assert amina.country == "CM"
    assert amina.delivery_price == pytest.approx(10 + 499 * 5 / 100)

    yassine = by_name["Yassine"]
    assert yassine.phone == "600000000"
    assert yassine.total_price == 350.0
    assert yassine.status is OrderStatus.PROCESSED


def test_fee_comes_from_selected_country_not_row_data():
    store, imports = _service()
    rows = [{"A": "2024-03-10", "C": "1", "D": "Serum", "F": 499, "H": "CM"}]
    mapping = dict(SALES_MAPPING, Country="H")

    imports.import_sales(rows, mapping, "MA")

    (only,) = store.sales
    assert only.country == "MA"
    assert only.delivery_price == 30.0


def test_importing_twice_adds_nothing_the_second_time():
    store, imports = _service()
    imports.import_sales(_rows(), SALES_MAPPING, "MA")
    first_count = len(store.sales)

    again = imports.import_sales(_rows(), SALES_MAPPING, "MA")

    assert again.imported == 0
    assert again.duplicates == first_count
    assert len(store.sales) == first_count


def test_duplicates_inside_one_batch_are_dropped():
    store, imports = _service()
    row = {"A": "2024-03-10", "C": "0600", "D": "Serum", "F": 200}
    report = imports.import_sales([row, dict(row)], SALES_MAPPING, "MA")
    assert (report.imported, report.duplicates) == (1, 1)


def test_accepted_rows_land_in_one_batch():
    repo = CountingRepo()
    store, imports = _service(adapter=repo)
    before = repo.batches

    imports.import_sales(_rows(), SALES_MAPPING, "MA")

    assert repo.batches - before == 1


def test_unknown_import_country_aborts_before_any_insert():
    store, imports = _service()
    with pytest.raises(ValidationError):
        imports.import_sales(_rows(), SALES_MAPPING, "ZZ")
    assert store.sales == []


def test_expense_import_keeps_unlinked_rows():
    store, imports = _service()
    mapping = {"Date": "A", "Amount": "B", "Platform": "C", "Product": "D", "Country": "E"}
    rows = [
        {"A": "10/03/2024", "B": "$1,250.50", "C": "Facebook", "D": "Serum", "E": "CM"},
        {"A": "2024-03-10", "B": "12", "C": "TikTok", "D": "Nope"},
        {"A": "Date", "B": "Amount"},
    ]

    report = imports.import_expenses(rows, mapping, ExpenseType.ADS)

    assert (report.imported, report.skipped, report.unknown_product) == (2, 1, 1)
    fb, tiktok = sorted(store.expenses, key=lambda e: e.platform)
    assert fb.amount == 1250.5 and fb.product_id == "p1" and fb.country == "CM" and fb.date == "2024-03-10"
    assert tiktok.product_id is None and tiktok.country == "MA"
    assert all(e.type is ExpenseType.ADS for e in store.expenses)

    again = imports.import_expenses(rows, mapping, ExpenseType.ADS)
    assert again.duplicates == 2
    assert len(store.expenses) == 2


def test_expense_type_column_overrides_default():
    store, imports = _service()
    mapping = {"Date": "A", "Amount": "B", "Type": "C", "Name": "D"}
    imports.import_expenses([{"A": "2024-03-01", "B": 300, "C": "fixed", "D": "Office Rent"}], mapping)
    (rent,) = store.expenses
    assert rent.type is ExpenseType.FIXED
    assert rent.label == "Office Rent"


def test_mapping_round_trip():
    store, imports = _service()
    imports.save_mapping("sales", SALES_MAPPING)
    assert imports.load_mapping("sales") == SALES_MAPPING
    assert imports.load_mapping("expenses") == {}

    with pytest.raises(ValidationError):
        imports.save_mapping("sales", {"Colour": "Z"})


def test_country_codes_are_normalized_on_import():
    store, imports = _service()
    mapping = {"Date": "A", "Amount": "B", "Platform": "C", "Country": "D"}

    imports.import_expenses([{"A": "2024-03-01", "B": 20, "C": "Meta", "D": " cm "}], mapping)
    imports.import_expenses([{"A": "2024-03-02", "B": 20, "C": "Meta"}], mapping, default_country="cm")
    imports.import_sales([{"A": "2024-03-10", "C": "0600", "D": "Serum", "F": 200}], SALES_MAPPING, "ma")

    assert {e.country for e in store.expenses} == {"CM"}
    (s,) = store.sales
    assert s.country == "MA" and s.delivery_price == 30.0
