import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def make_store(countries=(), products=(), sales=(), expenses=(), adapter=None, identity=None):
    from codprofit.repositories.memory_repo import InMemoryRepository
    from codprofit.services.entity_store import EntityStore

    store = EntityStore(adapter or InMemoryRepository(), identity=identity)
    for c in countries:
        store.add_country(c)
    for kind, items in (("products", products), ("sales", sales), ("expenses", expenses)):
        if items:
            store.add_many(kind, list(items))
    return store


def morocco(**overrides):
    from codprofit.domain.models import CountrySettings

    data = dict(
        id="c-ma",
        code="MA",
        name="Morocco",
        currency_code="MAD",
        exchange_rate_to_usd=0.1,
        service_fee=30.0,
        service_fee_percentage=0.0,
        is_primary=True,
    )
    data.update(overrides)
    return CountrySettings(**data)


def cameroon(**overrides):
    from codprofit.domain.models import CountrySettings

    data = dict(
        id="c-cm",
        code="CM",
        name="Cameroon",
        currency_code="XAF",
        exchange_rate_to_usd=0.0016,
        service_fee=10.0,
        service_fee_percentage=5.0,
        is_primary=False,
    )
    data.update(overrides)
    return CountrySettings(**data)


def sale(id="s1", date="2024-03-10", total=500.0, fee=30.0, qty=1, product="p1", country="MA", phone="0600", status=None):
    from codprofit.domain.models import OrderStatus, Sale

    return Sale(
        id=id,
        date=date,
        full_name="Client",
        phone=phone,
        product_id=product,
        quantity=qty,
        total_price=total,
        delivery_price=fee,
        status=status or OrderStatus.PROCESSED,
        country=country,
    )
