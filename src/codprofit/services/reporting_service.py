from __future__ import annotations

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from codprofit.domain.models import DisplayCurrency
from codprofit.services.filter_service import RecordFilter


class ReportingService:
    def __init__(self, aggregation):
        self.aggregation = aggregation

    def export_summary_excel(
        self,
        path: str,
        record_filter: RecordFilter | None = None,
        display: DisplayCurrency | None = None,
    ) -> None:
        record_filter = record_filter or RecordFilter()
        wb = Workbook()

        def money(cell):
            cell.number_format = "#,##0.00"

        def pct(cell):
            cell.number_format = "0.00%"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, start_col: int, end_row: int, end_col: int):
            ref = f"{get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        summary = self.aggregation.summary(record_filter, display)
        daily = self.aggregation.daily(record_filter, display)
        products = self.aggregation.products(record_filter, display)

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = "Profit summary"
        ws["A1"].font = Font(bold=True, size=14)

        ws["A3"] = "Window"
        ws["B3"] = f"{record_filter.date_range.start}  ->  {record_filter.date_range.end}"
        ws["A4"] = "Currency"
        ws["B4"] = summary.currency_code

        rows = [
            ("Orders", summary.order_count, "int"),
            ("Units sold", summary.units_sold, "int"),
            ("Sales", summary.total_sales, "money"),
            ("Stock cost", summary.total_stock_cost, "money"),
            ("Service fees", summary.total_service_fees, "money"),
            ("Ads", summary.total_ads, "money"),
            ("Fixed charges", summary.total_fixed, "money"),
            ("Test charges", summary.total_test, "money"),
            ("Net profit", summary.profit, "money"),
            ("Margin", summary.margin_pct / 100, "pct"),
        ]

        start_row = 6
        for i, (label, val, kind) in enumerate(rows):
            r = start_row + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = val
            if kind == "money":
                money(ws[f"B{r}"])
            elif kind == "pct":
                pct(ws[f"B{r}"])

        set_widths(ws, {"A": 24, "B": 34})

        # -------- 2) Daily --------
        ws2 = wb.create_sheet("Daily")
        ws2.append(["Date", "Sales", "Profit"])
        bold_row(ws2, 1)
        for i, point in enumerate(daily, start=2):
            ws2.append([point.date, point.sales, point.profit])
            money(ws2[f"B{i}"])
            money(ws2[f"C{i}"])
        ws2.freeze_panes = "A2"
        set_widths(ws2, {"A": 14, "B": 16, "C": 16})
        if ws2.max_row >= 2:
            add_table(ws2, "DailySeries", 1, 1, ws2.max_row, 3)

        # -------- 3) Products --------
        ws3 = wb.create_sheet("Products")
        ws3.append([
            "Product", "Orders", "Units", "Revenue", "Cost of goods", "Fees",
            "Ads", "Other charges", "Profit", "Margin %", "ROI %",
        ])
        bold_row(ws3, 1)
        for i, p in enumerate(products, start=2):
            ws3.append([
                p.name, p.orders, p.units, p.revenue, p.cost_of_goods, p.fees,
                p.ads, p.other_charges, p.profit, p.margin_pct / 100, p.roi_pct / 100,
            ])
            for col in "DEFGHI":
                money(ws3[f"{col}{i}"])
            pct(ws3[f"J{i}"])
            pct(ws3[f"K{i}"])
        ws3.freeze_panes = "A2"
        set_widths(ws3, {
            "A": 34, "B": 8, "C": 8, "D": 14, "E": 14, "F": 12,
            "G": 12, "H": 14, "I": 14, "J": 10, "K": 10,
        })
        if ws3.max_row >= 2:
            add_table(ws3, "ProductAnalysis", 1, 1, ws3.max_row, 11)

        wb.save(path)
