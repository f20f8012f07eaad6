from __future__ import annotations

from codprofit.domain.models import CountrySettings
from codprofit.services.currency_service import find_country


def calculate_service_fee(country_code: str, total_price_local: float, countries: list[CountrySettings]) -> float:
    """Fixed fee plus a percentage of the sale total, in the country's local currency."""
    country = find_country(country_code, countries)
    fixed = float(country.service_fee) if country else 0.0
    pct = float(country.service_fee_percentage) if country else 0.0
    return fixed + float(total_price_local) * pct / 100
