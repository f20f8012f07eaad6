from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging
import os
import sys

from codprofit.domain.errors import ConfigurationError
from codprofit.domain.models import DisplayCurrency


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path


@dataclass(frozen=True)
class AppSettings:
    display_currency: DisplayCurrency = DisplayCurrency.USD
    # None means a missing primary country is a configuration error
    fallback_primary_rate: float | None = None
    log_level: int = logging.INFO


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "CodProfit") -> AppPaths:
    override = os.environ.get("CODPROFIT_HOME")
    if override:
        base = Path(override)
    elif sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    db = base / "codprofit.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs)


def load_settings(environ: dict[str, str] | None = None) -> AppSettings:
    env = os.environ if environ is None else environ

    raw_display = env.get("CODPROFIT_DISPLAY_CURRENCY", DisplayCurrency.USD.value).strip().upper()
    try:
        display = DisplayCurrency(raw_display)
    except ValueError as e:
        raise ConfigurationError(f"CODPROFIT_DISPLAY_CURRENCY must be USD or PRIMARY, got {raw_display!r}") from e

    fallback = None
    raw_fallback = env.get("CODPROFIT_FALLBACK_PRIMARY_RATE", "").strip()
    if raw_fallback:
        try:
            fallback = float(raw_fallback)
        except ValueError as e:
            raise ConfigurationError(f"CODPROFIT_FALLBACK_PRIMARY_RATE is not a number: {raw_fallback!r}") from e
        if fallback <= 0:
            raise ConfigurationError("CODPROFIT_FALLBACK_PRIMARY_RATE must be > 0.")

    level_name = env.get("CODPROFIT_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level: {level_name}")

    return AppSettings(display_currency=display, fallback_primary_rate=fallback, log_level=level)
