"""
Closed supplier dispatch.

One attribute per integration; the orchestrator branches on SupplierSlug.
Adding a supplier means adding a client, an enum member and a branch in the
orchestrator.
"""

from __future__ import annotations

from dataclasses import dataclass

import requests

from procurement_config.schema import ProcurementSettings, SupplierSettings
from procurement_suppliers.ezcards import EzCardsClient
from procurement_suppliers.gift2games import Gift2GamesClient


@dataclass(frozen=True)
class SupplierClients:
    ezcards: EzCardsClient
    gift2games: Gift2GamesClient

    @classmethod
    def from_settings(
        cls,
        settings: ProcurementSettings,
        session: requests.Session | None = None,
    ) -> SupplierClients:
        http = session or requests.Session()
        return cls(
            ezcards=EzCardsClient(**_client_kwargs(settings.ezcards), session=http),
            gift2games=Gift2GamesClient(**_client_kwargs(settings.gift2games), session=http),
        )


def _client_kwargs(supplier: SupplierSettings) -> dict:
    return {
        "base_url": supplier.base_url,
        "access_token": supplier.access_token,
        "api_key": supplier.api_key,
        "retry_attempts": supplier.retry_attempts,
        "retry_delay_seconds": supplier.retry_delay_seconds,
        "timeout_seconds": supplier.timeout_seconds,
    }
