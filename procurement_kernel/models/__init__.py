"""Domain models for the procurement kernel."""

from procurement_kernel.models.purchase_order import (
    SUB_ORDER_TRANSITIONS,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderStatus,
    PurchaseOrderSupplier,
    SubOrderStatus,
)
from procurement_kernel.models.supplier import DigitalProduct, Supplier, SupplierType
from procurement_kernel.models.voucher import (
    VOUCHER_TRANSITIONS,
    Voucher,
    VoucherAuditAction,
    VoucherAuditLog,
    VoucherStatus,
)

__all__ = [
    "Supplier",
    "SupplierType",
    "DigitalProduct",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "PurchaseOrderStatus",
    "PurchaseOrderSupplier",
    "SubOrderStatus",
    "SUB_ORDER_TRANSITIONS",
    "Voucher",
    "VoucherStatus",
    "VoucherAuditAction",
    "VoucherAuditLog",
    "VOUCHER_TRANSITIONS",
]
