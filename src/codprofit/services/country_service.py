from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Optional

from codprofit.domain.errors import NotFoundError, ValidationError
from codprofit.domain.models import CountrySettings
from codprofit.services import currency_service as fx
from codprofit.services._validation import require_non_negative

log = logging.getLogger(__name__)


class CountryService:
    def __init__(self, store, rate_lookup=None):
        self.store = store
        self.rates = rate_lookup

    def list_countries(self) -> list[CountrySettings]:
        return sorted(self.store.countries, key=lambda c: (not c.is_primary, c.name.lower()))

    def get_country(self, country_id: str) -> CountrySettings:
        c = self.store.get("countries", country_id)
        if not c:
            raise NotFoundError("Country not found.")
        return c

    def _validated(self, country: CountrySettings) -> CountrySettings:
        code = (country.code or "").strip().upper()
        currency = (country.currency_code or "").strip().upper()
        if not code or not currency:
            raise ValidationError("Country code and currency code are required.")
        pct = require_non_negative(country.service_fee_percentage, "Service fee %")
        if pct > 100:
            raise ValidationError("Service fee % must be between 0 and 100.")
        return replace(
            country,
            code=code,
            currency_code=currency,
            name=(country.name or "").strip() or code,
            exchange_rate_to_usd=require_non_negative(country.exchange_rate_to_usd, "Exchange rate"),
            service_fee=require_non_negative(country.service_fee, "Service fee"),
            service_fee_percentage=pct,
        )

    def add_country(
        self,
        code: str,
        name: str,
        currency_code: str,
        exchange_rate_to_usd: float,
        service_fee: float = 0.0,
        service_fee_percentage: float = 0.0,
        is_primary: bool = False,
    ) -> CountrySettings:
        country = self._validated(
            CountrySettings(
                id=uuid.uuid4().hex,
                code=code,
                name=name,
                currency_code=currency_code,
                exchange_rate_to_usd=exchange_rate_to_usd,
                service_fee=service_fee,
                service_fee_percentage=service_fee_percentage,
                is_primary=is_primary,
            )
        )
        return self.store.add_country(country)

    def update_country(self, country: CountrySettings) -> CountrySettings:
        self.get_country(country.id)
        return self.store.update_country(self._validated(country))

    def make_primary(self, country_id: str) -> CountrySettings:
        return self.store.update_country(replace(self.get_country(country_id), is_primary=True))

    def delete_country(self, country_id: str) -> None:
        self.store.delete("countries", country_id)

    # ---------- Rate entry helpers ----------
    def _primary_rate(self) -> float:
        primary = self.store.primary_country()
        return float(primary.exchange_rate_to_usd) if primary else 0.0

    def equivalents(self, country: CountrySettings) -> tuple[Optional[float], Optional[float]]:
        """(1 USD in local units, 1 primary-currency unit in local units)."""
        rate = float(country.exchange_rate_to_usd)
        return fx.local_per_usd(rate), fx.local_per_primary(rate, self._primary_rate())

    def set_rate_from_usd_equivalent(self, country_id: str, local_per_usd: float) -> CountrySettings:
        rate = fx.rate_from_local_per_usd(local_per_usd)
        if rate is None:
            raise ValidationError("Equivalent must be > 0.")
        return self.update_country(replace(self.get_country(country_id), exchange_rate_to_usd=rate))

    def set_rate_from_primary_equivalent(self, country_id: str, local_per_primary: float) -> CountrySettings:
        rate = fx.rate_from_local_per_primary(local_per_primary, self._primary_rate())
        if rate is None:
            raise ValidationError("Equivalent must be > 0 and the primary country needs a rate.")
        return self.update_country(replace(self.get_country(country_id), exchange_rate_to_usd=rate))

    def refresh_rate(self, country_id: str) -> CountrySettings:
        if self.rates is None:
            raise ValidationError("No exchange-rate source configured.")
        country = self.get_country(country_id)
        rate = self.rates.rate_to_usd(country.currency_code)
        updated = self.update_country(replace(country, exchange_rate_to_usd=rate))
        log.info("country_rate_refreshed code=%s rate=%.6f", country.code, rate)
        return updated
