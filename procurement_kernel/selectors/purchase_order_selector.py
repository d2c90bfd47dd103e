"""
Module: procurement_kernel.selectors.purchase_order_selector
Responsibility: Queries over purchase orders and sub-orders: loading an order
    for a unit of work and listing the sub-orders the reconciliation job
    still has to poll.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select

from procurement_kernel.models.purchase_order import (
    PurchaseOrder,
    PurchaseOrderSupplier,
    SubOrderStatus,
)
from procurement_kernel.models.supplier import Supplier
from procurement_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class PendingSubOrder:
    """A sub-order awaiting codes from an asynchronous supplier."""

    sub_order_id: UUID
    purchase_order_id: UUID
    order_number: str
    transaction_id: str


class PurchaseOrderSelector(BaseSelector[PurchaseOrder]):

    def load_order(self, purchase_order_id: UUID) -> PurchaseOrder | None:
        """Return the ORM row; callers mutate it inside their own transaction."""
        return self.session.get(PurchaseOrder, purchase_order_id)

    def load_sub_order(self, sub_order_id: UUID) -> PurchaseOrderSupplier | None:
        return self.session.get(PurchaseOrderSupplier, sub_order_id)

    def pending_sub_orders(self, supplier_slug: str) -> list[PendingSubOrder]:
        """
        Sub-orders in PROCESSING with a transaction id, for one supplier.

        Ordered by creation time so that the oldest orders are polled first.
        """
        stmt = (
            select(
                PurchaseOrderSupplier.id,
                PurchaseOrderSupplier.purchase_order_id,
                PurchaseOrder.order_number,
                PurchaseOrderSupplier.transaction_id,
            )
            .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderSupplier.purchase_order_id)
            .join(Supplier, Supplier.id == PurchaseOrderSupplier.supplier_id)
            .where(
                PurchaseOrderSupplier.status == SubOrderStatus.PROCESSING.value,
                PurchaseOrderSupplier.transaction_id.is_not(None),
                Supplier.slug == supplier_slug,
            )
            .order_by(PurchaseOrderSupplier.created_at, PurchaseOrder.order_number)
        )
        return [
            PendingSubOrder(
                sub_order_id=row[0],
                purchase_order_id=row[1],
                order_number=row[2],
                transaction_id=row[3],
            )
            for row in self.session.execute(stmt)
        ]
