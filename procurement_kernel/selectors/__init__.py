"""Selectors for the procurement kernel (read side)."""

from procurement_kernel.selectors.catalog_selector import CatalogSelector
from procurement_kernel.selectors.purchase_order_selector import (
    PendingSubOrder,
    PurchaseOrderSelector,
)

__all__ = [
    "CatalogSelector",
    "PurchaseOrderSelector",
    "PendingSubOrder",
]
