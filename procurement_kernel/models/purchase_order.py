"""
Module: procurement_kernel.models.purchase_order
Responsibility: ORM persistence for purchase orders, their line items, and the
    per-supplier sub-orders that track fulfilment with external suppliers.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - order_number is globally unique (uq_purchase_order_number).
    - total_price == sum(items.subtotal); set once at creation by
      PurchaseOrderService, never recomputed.
    - At most one sub-order per (purchase_order, supplier)
      (uq_purchase_order_supplier).
    - Sub-order transitions follow SUB_ORDER_TRANSITIONS; enforcement lives in
      PurchaseOrderStatusService.transition_sub_order().
    - Items are read-only after creation: unit_cost and product_sku are
      snapshots taken when the order was placed.

Failure modes:
    - IntegrityError on duplicate order_number or duplicate sub-order.
"""

from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procurement_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from procurement_kernel.models.supplier import DigitalProduct, Supplier
    from procurement_kernel.models.voucher import Voucher


class PurchaseOrderStatus(str, Enum):
    """
    Overall status of a purchase order.

    PENDING only exists between the initial insert and the end of the
    creation transaction.  CANCELLED is set by operators and is never
    overwritten by status aggregation.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class SubOrderStatus(str, Enum):
    """
    Fulfilment status of one supplier's part of a purchase order.

    State machine:
        PROCESSING -> COMPLETED | FAILED
        COMPLETED: terminal
        FAILED: terminal
    """

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


SUB_ORDER_TRANSITIONS: dict[SubOrderStatus, frozenset[SubOrderStatus]] = {
    SubOrderStatus.PROCESSING: frozenset({
        SubOrderStatus.COMPLETED, SubOrderStatus.FAILED,
    }),
    SubOrderStatus.COMPLETED: frozenset(),
    SubOrderStatus.FAILED: frozenset(),
}


class PurchaseOrder(TrackedBase):
    """
    A request to buy digital goods from one or more suppliers.

    Guarantees:
        - Never deleted.
        - Status is derived from sub-orders after creation (see
          PurchaseOrderStatusService), except CANCELLED.
    """

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_purchase_order_number"),
        Index("idx_purchase_order_status", "status"),
    )

    # PO-YYYYMMDD-XXXXXXXX
    order_number: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
    )

    total_price: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    status: Mapped[PurchaseOrderStatus] = mapped_column(
        String(20),
        nullable=False,
        default=PurchaseOrderStatus.PENDING,
    )

    items: Mapped[list["PurchaseOrderItem"]] = relationship(
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.created_at",
    )

    sub_orders: Mapped[list["PurchaseOrderSupplier"]] = relationship(
        back_populates="purchase_order",
        cascade="all, delete-orphan",
    )

    vouchers: Mapped[list["Voucher"]] = relationship(
        back_populates="purchase_order",
    )

    @property
    def status_enum(self) -> PurchaseOrderStatus:
        return PurchaseOrderStatus(self.status)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.order_number} status={self.status_enum.value}>"


class PurchaseOrderItem(TrackedBase):
    """
    One product line of a purchase order.

    Guarantees:
        - quantity >= 1.
        - subtotal == quantity * unit_cost.
        - unit_cost and product_sku never change after creation.
    """

    __tablename__ = "purchase_order_items"

    __table_args__ = (
        Index("idx_po_item_order", "purchase_order_id"),
        Index("idx_po_item_order_supplier", "purchase_order_id", "supplier_id"),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("purchase_orders.id"),
        nullable=False,
    )

    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("suppliers.id"),
        nullable=False,
    )

    digital_product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("digital_products.id"),
        nullable=False,
    )

    # SKU as the supplier knew it when the order was placed
    product_sku: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(
        nullable=False,
    )

    unit_cost: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    subtotal: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    purchase_order: Mapped[PurchaseOrder] = relationship(
        back_populates="items",
    )

    supplier: Mapped["Supplier"] = relationship()

    product: Mapped["DigitalProduct"] = relationship()

    def __repr__(self) -> str:
        return f"<PurchaseOrderItem {self.product_sku} x{self.quantity}>"


class PurchaseOrderSupplier(TrackedBase):
    """
    Sub-order: one external supplier's part of a purchase order.

    Contract:
        Exists only for external suppliers.  transaction_id is the supplier's
        identifier for the order and is set once the supplier acknowledged
        it; it is NULL when the placement call failed.

    Guarantees:
        - Transitions follow SUB_ORDER_TRANSITIONS.
        - failure_reason is set when status is FAILED.
    """

    __tablename__ = "purchase_order_suppliers"

    __table_args__ = (
        UniqueConstraint(
            "purchase_order_id", "supplier_id", name="uq_purchase_order_supplier",
        ),
        Index("idx_po_supplier_status", "status"),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("purchase_orders.id"),
        nullable=False,
    )

    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("suppliers.id"),
        nullable=False,
    )

    transaction_id: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    status: Mapped[SubOrderStatus] = mapped_column(
        String(20),
        nullable=False,
        default=SubOrderStatus.PROCESSING,
    )

    failure_reason: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    purchase_order: Mapped[PurchaseOrder] = relationship(
        back_populates="sub_orders",
    )

    supplier: Mapped["Supplier"] = relationship()

    @property
    def status_enum(self) -> SubOrderStatus:
        return SubOrderStatus(self.status)

    @property
    def items(self) -> list[PurchaseOrderItem]:
        """Items of the parent order that belong to this supplier."""
        return [
            item for item in self.purchase_order.items
            if item.supplier_id == self.supplier_id
        ]

    def __repr__(self) -> str:
        return (
            f"<PurchaseOrderSupplier {self.transaction_id} "
            f"status={self.status_enum.value}>"
        )
