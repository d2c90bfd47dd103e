"""Outbound supplier integrations (EZ Cards, Gift2Games)."""

from procurement_suppliers.base import SupplierApiClient
from procurement_suppliers.dispatch import SupplierClients
from procurement_suppliers.ezcards import EzCardsClient
from procurement_suppliers.gift2games import Gift2GamesClient
from procurement_suppliers.types import (
    AsyncLineResult,
    AsyncOrderAck,
    OrderLineRequest,
    SupplierCode,
    SupplierCodeLine,
    SupplierResponse,
    SupplierSlug,
    SyncVoucher,
    VoucherCodeBatch,
)

__all__ = [
    "SupplierApiClient",
    "EzCardsClient",
    "Gift2GamesClient",
    "SupplierClients",
    "SupplierSlug",
    "SupplierResponse",
    "OrderLineRequest",
    "SyncVoucher",
    "AsyncOrderAck",
    "AsyncLineResult",
    "SupplierCode",
    "SupplierCodeLine",
    "VoucherCodeBatch",
]
