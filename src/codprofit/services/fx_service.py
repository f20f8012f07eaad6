from __future__ import annotations

import logging

import requests

from codprofit.domain.errors import RateUnavailableError

log = logging.getLogger("codprofit.fx")

PRIMARY_URL = "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@latest/v1/currencies/usd.json"
FALLBACK_URL = "https://latest.currency-api.pages.dev/v1/currencies/usd.json"


class RateLookupService:
    """Looks up today's rate for a currency and returns it as local -> USD."""

    def __init__(self, urls: tuple[str, ...] = (PRIMARY_URL, FALLBACK_URL), timeout: float = 10):
        self.urls = urls
        self.timeout = timeout

    def _fetch_json(self, url: str) -> dict:
        r = requests.get(url, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def _extract_local_per_usd(self, data: dict, currency: str) -> float:
        # common structure: {"date":"YYYY-MM-DD","usd":{"mad":9.97, ...}}
        if "usd" in data and isinstance(data["usd"], dict):
            v = data["usd"].get(currency)
            if v is not None:
                return self._validate_rate(v)

        for _k, v in data.items():
            if isinstance(v, dict) and currency in v:
                return self._validate_rate(v[currency])

        raise RateUnavailableError(f"Rate API response missing {currency.upper()}.")

    def _validate_rate(self, value: object) -> float:
        rate = float(value)  # type: ignore[arg-type]
        if rate <= 0:
            raise RateUnavailableError(f"Rate must be > 0. Received: {rate}")
        return rate

    def rate_to_usd(self, currency_code: str) -> float:
        currency = currency_code.strip().lower()
        if currency == "usd":
            return 1.0

        last_err = None
        for url in self.urls:
            try:
                local_per_usd = self._extract_local_per_usd(self._fetch_json(url), currency)
                log.info("fx_rate_fetched currency=%s local_per_usd=%.6f", currency, local_per_usd)
                return 1.0 / local_per_usd
            except (requests.RequestException, ValueError, TypeError, RateUnavailableError) as e:
                last_err = e
                log.warning("fx_source_failed url=%s error=%s", url, e)

        raise RateUnavailableError(f"Rate lookup failed for {currency.upper()}. Last error: {last_err}")
