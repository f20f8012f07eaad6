from pathlib import Path

from openpyxl import load_workbook
import pytest

from codprofit.application.container import build_container
from codprofit.domain.errors import ValidationError
from codprofit.services.excel_service import ExcelService
from codprofit.services.import_service import SALE_FIELDS


def test_template_round_trips_through_parser():
    excel = ExcelService()
    data = excel.build_workbook(SALE_FIELDS, rows=[["2024-03-10", "Amina", "0612", "Serum", 2, 499, "PAID"]])

    rows = excel.parse_workbook(data)

    assert rows[0] == {"A": "Date", "B": "Full Name", "C": "Phone", "D": "Product", "E": "Quantity", "F": "Total Price", "G": "Status"}
    assert rows[1]["F"] == 499
    assert excel.template_mapping(SALE_FIELDS)["Total Price"] == "F"


def test_parser_rejects_non_workbooks():
    with pytest.raises(ValidationError):
        ExcelService().parse_workbook(b"not a workbook")


def test_workbook_import_end_to_end(tmp_path: Path):
    app = build_container()
    app.countries.add_country("MA", "Morocco", "MAD", 0.1, service_fee=30)
    app.products.add_product("Serum", 15, 5, ["MA"])

    path = tmp_path / "orders.xlsx"
    path.write_bytes(
        app.excel.build_workbook(
            SALE_FIELDS,
            rows=[
                ["2024-03-10", "Amina", "0612", "Serum", 2, 500, "DELIVERED"],
                ["2024-03-11", "Omar", "0613", "serum", 1, 250, "PAID"],
            ],
        )
    )

    report = app.imports.import_sales(app.excel.parse_workbook(path), app.excel.template_mapping(SALE_FIELDS), "MA")

    assert (report.imported, report.skipped) == (2, 1)
    assert sum(s.delivery_price for s in app.store.sales) == 60.0


def test_summary_export_has_three_sheets(tmp_path: Path):
    app = build_container()
    app.countries.add_country("MA", "Morocco", "MAD", 0.1, service_fee=30)
    p = app.products.add_product("Serum", 15, 5, ["MA"])
    app.sales.create_sale("2024-03-10", "Amina", "0612", p.id, 2, 500, "MA")

    out = tmp_path / "report.xlsx"
    app.reporting.export_summary_excel(str(out))

    wb = load_workbook(out)
    assert wb.sheetnames == ["Summary", "Daily", "Products"]
    assert wb["Summary"]["B8"].value == 50.0
    assert wb["Summary"]["B14"].value == 7.0
    assert wb["Daily"]["A2"].value == "2024-03-10"
    assert wb["Products"]["A2"].value == "Serum"
