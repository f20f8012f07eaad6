import pytest
import requests

from codprofit.domain.errors import RateUnavailableError
from codprofit.services.country_service import CountryService
from codprofit.services.fx_service import RateLookupService

from conftest import cameroon, make_store, morocco


def test_falls_back_to_second_source():
    svc = RateLookupService(urls=("https://primary.invalid", "https://fallback.invalid"))
    calls = []

    def fetch(url: str):
        calls.append(url)
        if "primary" in url:
            raise requests.RequestException("network down")
        return {"date": "2024-03-10", "usd": {"mad": 10.0}}

    svc._fetch_json = fetch  # type: ignore[attr-defined]

    assert svc.rate_to_usd("MAD") == pytest.approx(0.1)
    assert len(calls) == 2


def test_raises_when_every_source_fails():
    svc = RateLookupService(urls=("https://a.invalid",))

    def fail(_url: str):
        raise requests.RequestException("network down")

    svc._fetch_json = fail  # type: ignore[attr-defined]

    with pytest.raises(RateUnavailableError):
        svc.rate_to_usd("XAF")


def test_non_positive_rate_is_rejected():
    svc = RateLookupService(urls=("https://a.invalid",))
    svc._fetch_json = lambda _url: {"usd": {"xaf": 0}}  # type: ignore[attr-defined]

    with pytest.raises(RateUnavailableError):
        svc.rate_to_usd("XAF")


def test_usd_needs_no_lookup():
    assert RateLookupService(urls=()).rate_to_usd("usd") == 1.0


class FixedRates:
    def rate_to_usd(self, currency_code):
        return 0.00165


class DownRates:
    def rate_to_usd(self, currency_code):
        raise RateUnavailableError("upstream unavailable")


def test_refresh_updates_country_rate():
    store = make_store(countries=[morocco(), cameroon()])
    updated = CountryService(store, FixedRates()).refresh_rate("c-cm")
    assert updated.exchange_rate_to_usd == 0.00165
    assert store.get("countries", "c-cm").exchange_rate_to_usd == 0.00165


def test_failed_refresh_leaves_rate_alone():
    store = make_store(countries=[morocco(), cameroon()])
    version = store.version

    with pytest.raises(RateUnavailableError):
        CountryService(store, DownRates()).refresh_rate("c-cm")

    assert store.get("countries", "c-cm").exchange_rate_to_usd == 0.0016
    assert store.version == version
