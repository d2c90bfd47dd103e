"""
procurement_config -- single public entrypoint for procurement settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_settings()``.  Components receive the values they need (a cipher
    key, a supplier base URL) as constructor arguments; none of them read
    environment variables directly.

Architecture position:
    Configuration -- sits above ``procurement_kernel`` and below
    ``procurement_services``.  The kernel MUST NEVER import from
    ``procurement_config``.

Invariants enforced:
    - Single entrypoint: all runtime settings flow through ``get_settings()``.
    - Secrets (encryption key, supplier tokens) are never logged.

Failure modes:
    - ``ConfigurationError`` -- encryption key missing or a numeric setting
      is not a number.
    - ``FileNotFoundError`` / ``yaml.YAMLError`` -- explicit YAML path is
      missing or malformed.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from procurement_config.loader import load_settings
from procurement_config.schema import (
    DatabaseSettings,
    ProcurementSettings,
    ReconciliationSettings,
    SupplierSettings,
)
from procurement_kernel.logging_config import get_logger

_logger = get_logger("config")


def get_settings(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProcurementSettings:
    """The ONLY public settings entrypoint.

    Emits a ``procurement_config_loaded`` log entry naming the database
    dialect, the supplier hosts and whether credentials are present.
    """
    settings = load_settings(config_path, environ)

    _logger.info(
        "procurement_config_loaded",
        extra={
            "database_dialect": settings.database.url.split(":", 1)[0],
            "ezcards_base_url": settings.ezcards.base_url,
            "ezcards_credentials": settings.ezcards.access_token is not None,
            "gift2games_base_url": settings.gift2games.base_url,
            "gift2games_credentials": settings.gift2games.access_token is not None,
            "reconcile_interval_seconds": settings.reconciliation.interval_seconds,
        },
    )
    return settings


__all__ = [
    "get_settings",
    "load_settings",
    "ProcurementSettings",
    "DatabaseSettings",
    "SupplierSettings",
    "ReconciliationSettings",
]
