"""
Procurement settings schema.

Typed, frozen view of everything the procurement core reads from its
environment: the database URL, the voucher encryption key, and each
supplier's endpoint, credentials and retry policy.  The loader parses YAML
and environment variables into these types; nothing else constructs them
outside tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field

EZ_CARDS_DEFAULT_BASE_URL = "https://api.ezcards.io"
GIFT_2_GAMES_DEFAULT_BASE_URL = "https://gift2games.net/api/"


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///procurement.db"
    echo: bool = False
    pool_size: int = 10


@dataclass(frozen=True)
class SupplierSettings:
    """Connection and retry settings for one supplier integration."""

    base_url: str
    access_token: str | None = None
    api_key: str | None = None
    retry_attempts: int = 3
    retry_delay_seconds: float = 0.0
    timeout_seconds: float | None = None

    def __repr__(self) -> str:
        # Credentials stay out of reprs and tracebacks
        return (
            f"SupplierSettings(base_url={self.base_url!r}, "
            f"retry_attempts={self.retry_attempts}, "
            f"retry_delay_seconds={self.retry_delay_seconds})"
        )


@dataclass(frozen=True)
class ReconciliationSettings:
    interval_seconds: float = 300.0


@dataclass(frozen=True)
class ProcurementSettings:
    """
    Root settings object returned by ``procurement_config.get_settings()``.

    voucher_encryption_key is the base64 form of the 32-byte key.
    """

    voucher_encryption_key: str
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    ezcards: SupplierSettings = field(
        default_factory=lambda: SupplierSettings(
            base_url=EZ_CARDS_DEFAULT_BASE_URL, retry_delay_seconds=3.0,
        )
    )
    gift2games: SupplierSettings = field(
        default_factory=lambda: SupplierSettings(
            base_url=GIFT_2_GAMES_DEFAULT_BASE_URL,
        )
    )
    reconciliation: ReconciliationSettings = field(
        default_factory=ReconciliationSettings
    )

    def __repr__(self) -> str:
        return (
            f"ProcurementSettings(database={self.database!r}, "
            f"ezcards={self.ezcards!r}, gift2games={self.gift2games!r}, "
            f"reconciliation={self.reconciliation!r})"
        )
