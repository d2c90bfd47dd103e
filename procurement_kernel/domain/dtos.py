"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the procurement core's
    boundary: OrderLine (input to order creation), SupplierInfo and
    ProductInfo (catalogue lookups), PurchaseOrderInfo with its item and
    sub-order views (creation output), and RevealedVoucher (audited reveal).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods are boundary converters invoked from the
    service layer only.

Invariants enforced:
    - Callers never receive ORM entities from the facade; a detached ORM row
      would lazy-load after its session closed.
    - Money is Decimal, never float.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from procurement_kernel.models.purchase_order import (
        PurchaseOrder as PurchaseOrderModel,
    )
    from procurement_kernel.models.purchase_order import (
        PurchaseOrderItem as PurchaseOrderItemModel,
    )
    from procurement_kernel.models.purchase_order import (
        PurchaseOrderSupplier as PurchaseOrderSupplierModel,
    )


@dataclass(frozen=True)
class OrderLine:
    """One requested product line.  Validated by PurchaseOrderService."""

    supplier_id: UUID
    product_id: UUID
    quantity: int


@dataclass(frozen=True)
class SupplierInfo:
    supplier_id: UUID
    name: str
    slug: str | None
    is_external: bool


@dataclass(frozen=True)
class ProductInfo:
    product_id: UUID
    supplier_id: UUID
    sku: str
    unit_cost: Decimal


@dataclass(frozen=True)
class PurchaseOrderItemInfo:
    item_id: UUID
    supplier_id: UUID
    product_id: UUID
    sku: str
    quantity: int
    unit_cost: Decimal
    subtotal: Decimal

    @classmethod
    def from_model(cls, model: PurchaseOrderItemModel) -> PurchaseOrderItemInfo:
        return cls(
            item_id=model.id,
            supplier_id=model.supplier_id,
            product_id=model.digital_product_id,
            sku=model.product_sku,
            quantity=model.quantity,
            unit_cost=Decimal(model.unit_cost),
            subtotal=Decimal(model.subtotal),
        )


@dataclass(frozen=True)
class SubOrderInfo:
    sub_order_id: UUID
    supplier_id: UUID
    transaction_id: str | None
    status: str
    failure_reason: str | None

    @classmethod
    def from_model(cls, model: PurchaseOrderSupplierModel) -> SubOrderInfo:
        return cls(
            sub_order_id=model.id,
            supplier_id=model.supplier_id,
            transaction_id=model.transaction_id,
            status=str(model.status_enum.value),
            failure_reason=model.failure_reason,
        )


@dataclass(frozen=True)
class PurchaseOrderInfo:
    """
    Snapshot of a purchase order at the end of a unit of work.

    Guarantees:
        - total_price == sum(item.subtotal for item in items).
    """

    purchase_order_id: UUID
    order_number: str
    status: str
    total_price: Decimal
    items: tuple[PurchaseOrderItemInfo, ...]
    sub_orders: tuple[SubOrderInfo, ...]
    voucher_count: int = 0

    @classmethod
    def from_model(cls, model: PurchaseOrderModel) -> PurchaseOrderInfo:
        return cls(
            purchase_order_id=model.id,
            order_number=model.order_number,
            status=str(model.status_enum.value),
            total_price=Decimal(model.total_price),
            items=tuple(PurchaseOrderItemInfo.from_model(i) for i in model.items),
            sub_orders=tuple(SubOrderInfo.from_model(s) for s in model.sub_orders),
            voucher_count=len(model.vouchers),
        )

    def sub_order_for(self, supplier_id: UUID) -> SubOrderInfo | None:
        for sub_order in self.sub_orders:
            if sub_order.supplier_id == supplier_id:
                return sub_order
        return None


@dataclass(frozen=True)
class RevealedVoucher:
    """Plaintext view of a voucher, produced only by an audited reveal."""

    voucher_id: UUID
    code: str | None
    pin_code: str | None
    serial_number: str | None
    status: str
