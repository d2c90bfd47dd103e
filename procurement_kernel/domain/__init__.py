"""Pure domain layer: clock, DTOs, order numbers."""

from procurement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from procurement_kernel.domain.dtos import (
    OrderLine,
    ProductInfo,
    PurchaseOrderInfo,
    PurchaseOrderItemInfo,
    RevealedVoucher,
    SubOrderInfo,
    SupplierInfo,
)
from procurement_kernel.domain.order_number import generate_order_number

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "OrderLine",
    "SupplierInfo",
    "ProductInfo",
    "PurchaseOrderInfo",
    "PurchaseOrderItemInfo",
    "SubOrderInfo",
    "RevealedVoucher",
    "generate_order_number",
]
