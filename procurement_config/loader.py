"""
Configuration Loader (``procurement_config.loader``).

Responsibility
--------------
Reads an optional YAML settings file, applies environment variable
overrides, and parses the result into the frozen dataclasses of
``procurement_config.schema``.  Runtime callers use
``procurement_config.get_settings()`` instead of calling this directly.

Precedence
----------
environment variable  >  YAML file  >  schema default

Failure modes
-------------
* Missing YAML file (explicit path)  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing encryption key, or a non-numeric number  -> ``ConfigurationError``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from procurement_config.schema import (
    EZ_CARDS_DEFAULT_BASE_URL,
    GIFT_2_GAMES_DEFAULT_BASE_URL,
    DatabaseSettings,
    ProcurementSettings,
    ReconciliationSettings,
    SupplierSettings,
)
from procurement_kernel.exceptions import ConfigurationError

CONFIG_PATH_ENV = "PROCUREMENT_CONFIG"

# env var -> path in the YAML document
ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "DATABASE_URL": ("database", "url"),
    "VOUCHER_ENCRYPTION_KEY": ("voucher_encryption_key",),
    "EZ_CARDS_BASE_URL": ("suppliers", "ez_cards", "base_url"),
    "EZ_CARDS_ACCESS_TOKEN": ("suppliers", "ez_cards", "access_token"),
    "EZ_CARDS_API_KEY": ("suppliers", "ez_cards", "api_key"),
    "GIFT_2_GAMES_BASE_URL": ("suppliers", "gift2games", "base_url"),
    "GIFT_2_GAMES_ACCESS_TOKEN": ("suppliers", "gift2games", "access_token"),
    "SUPPLIER_HTTP_TIMEOUT": ("http_timeout_seconds",),
    "RECONCILE_INTERVAL_SECONDS": ("reconciliation", "interval_seconds"),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def apply_env_overrides(
    data: dict[str, Any], environ: Mapping[str, str],
) -> dict[str, Any]:
    """Return a copy of ``data`` with environment values written over it."""
    merged = _deep_copy(data)
    for env_name, path in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None or value == "":
            continue
        node = merged
        for key in path[:-1]:
            node = node.setdefault(key, {})
        node[path[-1]] = value
    return merged


def parse_settings(data: Mapping[str, Any]) -> ProcurementSettings:
    """Build ProcurementSettings from a merged settings document."""
    key = data.get("voucher_encryption_key")
    if not key:
        raise ConfigurationError(
            "VOUCHER_ENCRYPTION_KEY",
            "not set; generate one with: openssl rand -base64 32",
        )

    timeout = _optional_float(data.get("http_timeout_seconds"), "SUPPLIER_HTTP_TIMEOUT")
    suppliers = data.get("suppliers") or {}

    db = data.get("database") or {}
    database = DatabaseSettings(
        url=str(db.get("url", DatabaseSettings.url)),
        echo=bool(db.get("echo", False)),
        pool_size=int(db.get("pool_size", DatabaseSettings.pool_size)),
    )

    recon = data.get("reconciliation") or {}
    reconciliation = ReconciliationSettings(
        interval_seconds=_float(
            recon.get("interval_seconds", ReconciliationSettings.interval_seconds),
            "RECONCILE_INTERVAL_SECONDS",
        ),
    )

    return ProcurementSettings(
        voucher_encryption_key=str(key),
        database=database,
        ezcards=_parse_supplier(
            suppliers.get("ez_cards") or {},
            default_base_url=EZ_CARDS_DEFAULT_BASE_URL,
            default_delay=3.0,
            timeout=timeout,
        ),
        gift2games=_parse_supplier(
            suppliers.get("gift2games") or {},
            default_base_url=GIFT_2_GAMES_DEFAULT_BASE_URL,
            default_delay=0.0,
            timeout=timeout,
        ),
        reconciliation=reconciliation,
    )


def load_settings(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProcurementSettings:
    """
    Load settings from YAML (optional) and the environment.

    ``config_path`` defaults to the file named by PROCUREMENT_CONFIG.  When
    neither is given, only environment variables and defaults apply.
    """
    env = os.environ if environ is None else environ
    path = config_path or env.get(CONFIG_PATH_ENV)
    data = load_yaml_file(Path(path)) if path else {}
    return parse_settings(apply_env_overrides(data, env))


def _parse_supplier(
    data: Mapping[str, Any],
    default_base_url: str,
    default_delay: float,
    timeout: float | None,
) -> SupplierSettings:
    return SupplierSettings(
        base_url=str(data.get("base_url") or default_base_url),
        access_token=data.get("access_token"),
        api_key=data.get("api_key"),
        retry_attempts=int(data.get("retry_attempts", 3)),
        retry_delay_seconds=_float(
            data.get("retry_delay_seconds", default_delay), "retry_delay_seconds",
        ),
        timeout_seconds=_optional_float(
            data.get("timeout_seconds", timeout), "timeout_seconds",
        ),
    )


def _float(value: Any, setting: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(setting, f"expected a number, got {value!r}")


def _optional_float(value: Any, setting: str) -> float | None:
    if value is None or value == "":
        return None
    return _float(value, setting)


def _deep_copy(data: Mapping[str, Any]) -> dict[str, Any]:
    return {
        k: _deep_copy(v) if isinstance(v, Mapping) else v
        for k, v in data.items()
    }
