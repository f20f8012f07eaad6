"""Conversions between a country's local currency, USD and the display currency.

Sales are recorded in local currency, product costs and expenses in USD.
``exchange_rate_to_usd`` is the USD value of one local unit. The primary
country's rate is the pivot whenever the display currency is not USD.
"""
from __future__ import annotations

from typing import Iterable, Optional

from codprofit.domain.errors import ConfigurationError
from codprofit.domain.models import CountrySettings, DisplayCurrency


def find_country(code: str, countries: Iterable[CountrySettings]) -> Optional[CountrySettings]:
    for c in countries:
        if c.code == code:
            return c
    return None


def find_primary(countries: Iterable[CountrySettings]) -> Optional[CountrySettings]:
    for c in countries:
        if c.is_primary:
            return c
    return None


def primary_rate_to_usd(countries: Iterable[CountrySettings], fallback_primary_rate: float | None = None) -> float:
    primary = find_primary(countries)
    if primary is not None and primary.exchange_rate_to_usd > 0:
        return float(primary.exchange_rate_to_usd)
    if fallback_primary_rate is not None and fallback_primary_rate > 0:
        return float(fallback_primary_rate)
    if primary is None:
        raise ConfigurationError("No primary country configured; cannot display in primary currency.")
    raise ConfigurationError(f"Primary country {primary.code} has no usable exchange rate.")


def local_to_display_rate(
    country_code: str,
    display: DisplayCurrency,
    countries: list[CountrySettings],
    fallback_primary_rate: float | None = None,
) -> float:
    country = find_country(country_code, countries)
    if country is None:
        return 0.0
    rate_local_to_usd = float(country.exchange_rate_to_usd)
    if display is DisplayCurrency.USD:
        return rate_local_to_usd
    return rate_local_to_usd / primary_rate_to_usd(countries, fallback_primary_rate)


def usd_to_display_rate(
    display: DisplayCurrency,
    countries: list[CountrySettings],
    fallback_primary_rate: float | None = None,
) -> float:
    if display is DisplayCurrency.USD:
        return 1.0
    return 1.0 / primary_rate_to_usd(countries, fallback_primary_rate)


def display_currency_code(display: DisplayCurrency, countries: list[CountrySettings]) -> str:
    if display is DisplayCurrency.USD:
        return "USD"
    primary = find_primary(countries)
    return primary.currency_code if primary else "USD"


# Settings form helpers. Rates are edited as "1 USD = x local" or
# "1 primary unit = x local" and stored as local -> USD.

def local_per_usd(rate_to_usd: float) -> Optional[float]:
    if rate_to_usd <= 0:
        return None
    return 1.0 / rate_to_usd


def local_per_primary(rate_to_usd: float, primary_rate: float) -> Optional[float]:
    if rate_to_usd <= 0:
        return None
    return primary_rate / rate_to_usd


def rate_from_local_per_usd(value: float) -> Optional[float]:
    if value <= 0:
        return None
    return 1.0 / value


def rate_from_local_per_primary(value: float, primary_rate: float) -> Optional[float]:
    if value <= 0 or primary_rate <= 0:
        return None
    return primary_rate / value
