"""
procurement_batch.types -- Frozen result types for voucher reconciliation.

ZERO I/O.  Follows the frozen-dataclass-plus-enum pattern used for DTOs in
the kernel.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID


class SubOrderOutcome(str, Enum):
    """How one sub-order fared in one reconciliation run."""

    PROCESSED = "processed"  # Supplier returned lines; writes committed
    SKIPPED = "skipped"  # Nothing to do (no lines yet, or finished elsewhere)


@dataclass(frozen=True)
class SubOrderResult:
    outcome: SubOrderOutcome
    vouchers_added: int = 0
    completed: bool = False


@dataclass(frozen=True)
class ReconciliationError:
    purchase_order_id: UUID
    order_number: str
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "purchase_order_id": str(self.purchase_order_id),
            "order_number": self.order_number,
            "error": self.error,
        }


@dataclass(frozen=True)
class ReconciliationSummary:
    """
    Totals for one run of VoucherReconciliationJob.

    Guarantees:
        total_orders == processed_orders + skipped_orders + failed_orders.
    """

    total_orders: int = 0
    processed_orders: int = 0
    skipped_orders: int = 0
    failed_orders: int = 0
    total_vouchers_added: int = 0
    completed_orders: int = 0
    errors: tuple[ReconciliationError, ...] = field(default_factory=tuple)

    @property
    def has_failures(self) -> bool:
        return self.failed_orders > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_orders": self.total_orders,
            "processed_orders": self.processed_orders,
            "skipped_orders": self.skipped_orders,
            "failed_orders": self.failed_orders,
            "total_vouchers_added": self.total_vouchers_added,
            "completed_orders": self.completed_orders,
            "errors": [e.to_dict() for e in self.errors],
        }
