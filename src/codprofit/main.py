from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from codprofit.application.container import AppContainer, build_container
from codprofit.config import get_app_paths, load_settings
from codprofit.domain.errors import AppError
from codprofit.domain.models import DisplayCurrency, ExpenseType
from codprofit.logging_config import setup_logging
from codprofit.services.filter_service import ALL, DateRangeSelector, RecordFilter, resolve_date_range
from codprofit.services.import_service import EXPENSE_FIELDS, SALE_FIELDS

log = logging.getLogger(__name__)


def _add_filter_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--range", default=DateRangeSelector.THIS_MONTH.value, choices=[s.value for s in DateRangeSelector])
    p.add_argument("--start", help="custom range start (YYYY-MM-DD)")
    p.add_argument("--end", help="custom range end (YYYY-MM-DD)")
    p.add_argument("--country", default=ALL)
    p.add_argument("--product", default=ALL)
    p.add_argument("--currency", choices=[c.value for c in DisplayCurrency])


def _add_mapping_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("file", type=Path)
    p.add_argument("--map", action="append", default=[], metavar="FIELD=COLUMN", help='e.g. --map "Total Price=F"')
    p.add_argument("--save-mapping", action="store_true")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="codprofit", description="Cash-on-delivery profit dashboard")
    parser.add_argument("--db", type=Path, help="sqlite database (default: per-user app folder)")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("summary", "daily", "products", "export"):
        p = sub.add_parser(name)
        _add_filter_args(p)
        if name == "export":
            p.add_argument("out", type=Path)

    p = sub.add_parser("import-sales")
    _add_mapping_args(p)
    p.add_argument("--country", required=True, help="country code every imported order belongs to")

    p = sub.add_parser("import-expenses")
    _add_mapping_args(p)
    p.add_argument("--type", default=ExpenseType.ADS.value, choices=[t.value for t in ExpenseType])
    p.add_argument("--country", help="country for rows without a country column")

    p = sub.add_parser("template")
    p.add_argument("kind", choices=["sales", "expenses"])
    p.add_argument("out", type=Path)

    p = sub.add_parser("add-country")
    p.add_argument("code")
    p.add_argument("name")
    p.add_argument("currency")
    p.add_argument("--rate", type=float, required=True, help="USD value of one local unit")
    p.add_argument("--fee", type=float, default=0.0)
    p.add_argument("--fee-pct", type=float, default=0.0)
    p.add_argument("--primary", action="store_true")

    p = sub.add_parser("add-product")
    p.add_argument("name")
    p.add_argument("--production", type=float, required=True)
    p.add_argument("--shipping", type=float, default=0.0)
    p.add_argument("--countries", default="", help="comma separated country codes")

    sub.add_parser("countries")

    p = sub.add_parser("refresh-rate", help="fetch today's rate for a country's currency")
    p.add_argument("code")
    return parser


def _record_filter(args) -> RecordFilter:
    return RecordFilter(
        date_range=resolve_date_range(args.range, args.start, args.end),
        country=args.country,
        product=args.product,
    )


def _display(args, app: AppContainer) -> DisplayCurrency:
    return DisplayCurrency(args.currency) if args.currency else app.settings.display_currency


def _parse_map(pairs: list[str]) -> dict[str, str]:
    mapping = {}
    for pair in pairs:
        field, sep, column = pair.partition("=")
        if not sep or not field.strip() or not column.strip():
            raise AppError(f"Bad mapping {pair!r}; expected FIELD=COLUMN.")
        mapping[field.strip()] = column.strip().upper()
    return mapping


def _import(app: AppContainer, args, feature: str) -> int:
    mapping = app.imports.load_mapping(feature)
    mapping.update(_parse_map(args.map))
    if args.save_mapping:
        app.imports.save_mapping(feature, mapping)
    rows = app.excel.parse_workbook(args.file)
    if feature == "sales":
        report = app.imports.import_sales(rows, mapping, args.country.upper())
    else:
        country = args.country.upper() if args.country else None
        report = app.imports.import_expenses(rows, mapping, ExpenseType(args.type), country)
    print(
        f"Imported {report.imported}, skipped {report.skipped}, "
        f"duplicates {report.duplicates}, unknown product {report.unknown_product}"
    )
    return 0


def run(args, app: AppContainer) -> int:
    cmd = args.command
    if cmd == "summary":
        s = app.aggregation.summary(_record_filter(args), _display(args, app))
        for label, value in (
            ("Sales", s.total_sales),
            ("Stock cost", s.total_stock_cost),
            ("Service fees", s.total_service_fees),
            ("Ads", s.total_ads),
            ("Fixed", s.total_fixed),
            ("Test", s.total_test),
            ("Profit", s.profit),
        ):
            print(f"{label:<14}{value:>14,.2f} {s.currency_code}")
        print(f"{'Margin':<14}{s.margin_pct:>13.2f}%")
        print(f"{'Orders':<14}{s.order_count:>14}")
        return 0
    if cmd == "daily":
        for point in app.aggregation.daily(_record_filter(args), _display(args, app)):
            print(f"{point.date}  {point.sales:>12,.2f}  {point.profit:>12,.2f}")
        return 0
    if cmd == "products":
        for p in app.aggregation.products(_record_filter(args), _display(args, app)):
            print(f"{p.name[:30]:<30} profit {p.profit:>12,.2f}  margin {p.margin_pct:>7.2f}%  roi {p.roi_pct:>7.2f}%")
        return 0
    if cmd == "export":
        app.reporting.export_summary_excel(str(args.out), _record_filter(args), _display(args, app))
        print(f"Report written to {args.out}")
        return 0
    if cmd == "import-sales":
        return _import(app, args, "sales")
    if cmd == "import-expenses":
        return _import(app, args, "expenses")
    if cmd == "template":
        fields = SALE_FIELDS if args.kind == "sales" else EXPENSE_FIELDS
        args.out.write_bytes(app.excel.build_template(fields, title=args.kind.capitalize()))
        print(f"Template written to {args.out}")
        return 0
    if cmd == "add-country":
        c = app.countries.add_country(
            args.code, args.name, args.currency, args.rate, args.fee, args.fee_pct, is_primary=args.primary
        )
        print(f"Added {c.code} (primary: {c.is_primary})")
        return 0
    if cmd == "add-product":
        countries = [c.strip().upper() for c in args.countries.split(",") if c.strip()]
        p = app.products.add_product(args.name, args.production, args.shipping, countries)
        print(f"Added product {p.id} {p.name}")
        return 0
    if cmd == "countries":
        for c in app.countries.list_countries():
            per_usd, _ = app.countries.equivalents(c)
            flag = " *" if c.is_primary else ""
            rate_txt = f"1 USD = {per_usd:,.2f} {c.currency_code}" if per_usd else "no rate"
            print(f"{c.code:<4}{c.name:<20}{rate_txt:<28} fee {c.service_fee:g} + {c.service_fee_percentage:g}%{flag}")
        return 0
    if cmd == "refresh-rate":
        code = args.code.strip().upper()
        country = next((c for c in app.countries.list_countries() if c.code == code), None)
        if country is None:
            raise AppError(f"Unknown country {code}")
        c = app.countries.refresh_rate(country.id)
        print(f"{c.code}: 1 {c.currency_code} = {c.exchange_rate_to_usd:.6f} USD")
        return 0
    raise AppError(f"Unknown command {cmd}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    paths = get_app_paths()
    try:
        settings = load_settings()
        setup_logging(paths.logs_dir, level=settings.log_level)
        app = build_container(args.db or paths.db_path, settings)
        return run(args, app)
    except AppError as e:
        log.error("command_failed command=%s error=%s", args.command, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
