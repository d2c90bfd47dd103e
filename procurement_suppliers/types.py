"""
Normalized supplier DTOs.

Each supplier speaks its own JSON dialect; the clients translate responses
into these frozen dataclasses so the orchestrator and the reconciliation job
never touch raw payloads.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from procurement_kernel.exceptions import SupplierNotConfiguredError


class SupplierSlug(str, Enum):
    """
    The closed set of supplier integrations.

    EZ_CARDS is asynchronous (order now, poll for codes later).
    GIFT2GAMES is synchronous (one code per call, returned immediately).
    """

    EZ_CARDS = "ez_cards"
    GIFT2GAMES = "gift2games"

    @classmethod
    def parse(cls, slug: str | None) -> SupplierSlug:
        try:
            return cls(slug)
        except ValueError:
            raise SupplierNotConfiguredError(
                str(slug), reason="no integration for this slug",
            )


@dataclass(frozen=True)
class SupplierResponse:
    """A decoded 2xx response."""

    status_code: int
    payload: Any


@dataclass(frozen=True)
class OrderLineRequest:
    sku: str
    quantity: int


@dataclass(frozen=True)
class SyncVoucher:
    """One unit delivered by a synchronous supplier."""

    code: str
    serial_number: str | None = None
    pin_code: str | None = None


@dataclass(frozen=True)
class AsyncLineResult:
    sku: str
    quantity: int
    status: str | None


@dataclass(frozen=True)
class AsyncOrderAck:
    """Acknowledgement of an order placed with an asynchronous supplier."""

    transaction_id: str
    status: str | None
    line_results: tuple[AsyncLineResult, ...] = ()


@dataclass(frozen=True)
class SupplierCode:
    """
    One unit in a code poll.

    redeem_code is None until the supplier releases it; stock_id identifies
    the unit across polls.
    """

    stock_id: str | None
    status: str | None
    redeem_code: str | None
    pin_code: str | None = None

    @property
    def has_code(self) -> bool:
        return bool(self.redeem_code)


@dataclass(frozen=True)
class SupplierCodeLine:
    sku: str
    codes: tuple[SupplierCode, ...]


@dataclass(frozen=True)
class VoucherCodeBatch:
    """Result of polling an asynchronous order for its codes."""

    transaction_id: str
    items: tuple[SupplierCodeLine, ...]

    @property
    def is_empty(self) -> bool:
        return not self.items
