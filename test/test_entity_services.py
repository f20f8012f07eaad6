from dataclasses import replace

import pytest

from codprofit.domain.errors import (
    CascadeConfirmationRequired,
    DuplicateRecordError,
    NotFoundError,
    ValidationError,
)
from codprofit.domain.models import Expense, ExpenseType, OrderStatus, Product
from codprofit.services.country_service import CountryService
from codprofit.services.expense_service import ExpenseService
from codprofit.services.product_service import ProductService
from codprofit.services.sales_service import SalesService

from conftest import cameroon, make_store, morocco, sale


def _store():
    return make_store(
        countries=[morocco(), cameroon()],
        products=[Product(id="p1", name="Serum", price_production=15, price_shipping=5, countries=("MA", "CM"))],
    )


# ---------- Sales ----------
def test_fee_is_derived_from_country_and_recomputed_on_update():
    store = _store()
    svc = SalesService(store)

    s = svc.create_sale("2024-03-10", "Amina", "0612", "p1", 1, 1000, "CM")
    assert s.delivery_price == 60.0

    updated = svc.update_sale(replace(s, total_price=2000, delivery_price=0))
    assert updated.delivery_price == 110.0
    assert store.get("sales", s.id).delivery_price == 110.0


def test_duplicate_sale_needs_explicit_override():
    store = _store()
    svc = SalesService(store)
    first = svc.create_sale("2024-03-10", "Amina", "06 12", "p1", 1, 500, "MA")

    with pytest.raises(DuplicateRecordError) as exc:
        svc.create_sale("2024-03-10", "Amina B.", "0612", "p1", 1, 500.001, "MA")
    assert exc.value.existing_id == first.id

    svc.create_sale("2024-03-10", "Amina B.", "0612", "p1", 1, 500, "MA", allow_duplicate=True)
    assert len(store.sales) == 2


@pytest.mark.parametrize("qty", [0, -1, 1.5, "two"])
def test_quantity_must_be_positive_whole_number(qty):
    with pytest.raises(ValidationError):
        SalesService(_store()).create_sale("2024-03-10", "A", "1", "p1", qty, 100, "MA")


def test_bad_date_is_rejected():
    with pytest.raises(ValidationError):
        SalesService(_store()).create_sale("10/03/2024", "A", "1", "p1", 1, 100, "MA")


def test_sales_view_marks_missing_products():
    store = make_store(countries=[morocco()], sales=[sale(product="gone", status=OrderStatus.PAID)])
    (row,) = SalesService(store).list_sales_view(OrderStatus.PAID)
    assert row.product_name == "Unknown"
    assert row.net_local == 470.0
    assert SalesService(store).list_sales_view(OrderStatus.RETURNED) == []


def test_set_status_on_missing_sale_raises():
    with pytest.raises(NotFoundError):
        SalesService(_store()).set_status("nope", OrderStatus.PAID)


# ---------- Products ----------
def test_product_delete_requires_confirmation_when_linked():
    store = _store()
    SalesService(store).create_sale("2024-03-10", "A", "1", "p1", 1, 100, "MA")
    ExpenseService(store).create_expense("2024-03-10", 5, ExpenseType.ADS, "MA", platform="Meta", product_id="p1")
    svc = ProductService(store)

    with pytest.raises(CascadeConfirmationRequired) as exc:
        svc.delete_product("p1")
    assert (exc.value.sales, exc.value.expenses) == (1, 1)
    assert store.get("products", "p1") is not None
    assert len(store.sales) == 1

    assert svc.delete_product("p1", confirmed=True) == (1, 1)
    assert store.products == [] and store.sales == [] and store.expenses == []


def test_unlinked_product_deletes_without_confirmation():
    store = _store()
    assert ProductService(store).delete_product("p1") == (0, 0)
    assert store.products == []


def test_product_validation():
    svc = ProductService(_store())
    with pytest.raises(ValidationError):
        svc.add_product("  ", 1, 1)
    with pytest.raises(ValidationError):
        svc.add_product("Cream", -1, 1)
    p = svc.add_product(" Cream ", 3, 2, ["MA", "MA", " "])
    assert p.name == "Cream"
    assert p.countries == ("MA",)
    assert svc.find_by_name("cream").id == p.id


# ---------- Expenses ----------
def test_fixed_charge_needs_a_name():
    svc = ExpenseService(_store())
    with pytest.raises(ValidationError):
        svc.create_expense("2024-03-01", 300, ExpenseType.FIXED, "MA")
    e = svc.create_expense("2024-03-01", 300, ExpenseType.FIXED, "MA", name="Office Rent")
    assert e.label == "Office Rent"


def test_expense_link_must_exist():
    with pytest.raises(ValidationError):
        ExpenseService(_store()).create_expense("2024-03-01", 5, ExpenseType.ADS, "MA", product_id="nope")


def test_duplicate_expense_is_detected_by_label():
    store = _store()
    svc = ExpenseService(store)
    svc.create_expense("2024-03-01", 12.5, ExpenseType.ADS, "MA", platform="TikTok")

    with pytest.raises(DuplicateRecordError):
        svc.create_expense("2024-03-01", 12.5, ExpenseType.ADS, "CM", platform="tiktok")

    svc.create_expense("2024-03-01", 12.5, ExpenseType.ADS, "MA", platform="Meta")
    assert [e.platform for e in svc.list_by_type(ExpenseType.ADS)] == ["TikTok", "Meta"]


def test_update_missing_expense_raises():
    ghost = Expense(id="x", date="2024-03-01", amount=1, type=ExpenseType.TEST, country="MA")
    with pytest.raises(NotFoundError):
        ExpenseService(_store()).update_expense(ghost)


# ---------- Countries ----------
def test_rate_equivalents():
    svc = CountryService(_store())
    per_usd, per_primary = svc.equivalents(svc.get_country("c-cm"))
    assert per_usd == pytest.approx(625.0)
    assert per_primary == pytest.approx(62.5)


def test_set_rate_from_equivalents():
    svc = CountryService(_store())
    assert svc.set_rate_from_usd_equivalent("c-cm", 500).exchange_rate_to_usd == pytest.approx(0.002)
    assert svc.set_rate_from_primary_equivalent("c-cm", 50).exchange_rate_to_usd == pytest.approx(0.002)
    with pytest.raises(ValidationError):
        svc.set_rate_from_usd_equivalent("c-cm", 0)


def test_fee_percentage_above_hundred_is_rejected():
    svc = CountryService(_store())
    with pytest.raises(ValidationError):
        svc.add_country("SN", "Senegal", "XOF", 0.0016, service_fee_percentage=120)


def test_make_primary_and_listing_order():
    svc = CountryService(_store())
    svc.make_primary("c-cm")
    assert [c.code for c in svc.list_countries()] == ["CM", "MA"]


def test_refresh_without_source_is_a_validation_error():
    with pytest.raises(ValidationError):
        CountryService(_store()).refresh_rate("c-ma")


def test_sale_for_missing_product_is_rejected():
    store = _store()
    with pytest.raises(ValidationError):
        SalesService(store).create_sale("2024-03-10", "A", "1", "no-such-product", 1, 100, "MA")
    assert store.sales == []


def test_status_change_recomputes_fee_from_current_settings():
    store = _store()
    sales = SalesService(store)
    s = sales.create_sale("2024-03-10", "A", "1", "p1", 1, 500, "MA")
    assert s.delivery_price == 30.0

    CountryService(store).update_country(replace(store.get("countries", "c-ma"), service_fee=45))
    updated = sales.set_status(s.id, OrderStatus.DELIVERED)

    assert updated.status is OrderStatus.DELIVERED
    assert store.get("sales", s.id).delivery_price == 45.0


@pytest.mark.parametrize("bad", ["inf", "-inf", float("inf"), "nan"])
def test_non_finite_amounts_are_rejected(bad):
    store = _store()
    with pytest.raises(ValidationError):
        ProductService(store).add_product("Cream", bad, 0)
    with pytest.raises(ValidationError):
        SalesService(store).create_sale("2024-03-10", "A", "1", "p1", 1, bad, "MA")
    with pytest.raises(ValidationError):
        ExpenseService(store).create_expense("2024-03-10", bad, ExpenseType.ADS, "MA", platform="Meta")
    with pytest.raises(ValidationError):
        CountryService(store).add_country("SN", "Senegal", "XOF", bad)
    assert len(store.products) == 1 and store.sales == [] and store.expenses == []
