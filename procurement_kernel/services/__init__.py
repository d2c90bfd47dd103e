"""Kernel services (write side)."""

from procurement_kernel.services.purchase_order_status_service import (
    PurchaseOrderStatusService,
    compute_overall_status,
)
from procurement_kernel.services.voucher_audit_service import VoucherAuditService
from procurement_kernel.services.voucher_cipher import VoucherCipher
from procurement_kernel.services.voucher_service import VoucherService

__all__ = [
    "VoucherCipher",
    "VoucherService",
    "VoucherAuditService",
    "PurchaseOrderStatusService",
    "compute_overall_status",
]
