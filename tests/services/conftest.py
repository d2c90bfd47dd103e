"""Fixtures shared by the service tests: a placed order built directly via the ORM."""

from dataclasses import dataclass
from decimal import Decimal

import pytest

from procurement_kernel.models import (
    DigitalProduct,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderStatus,
    PurchaseOrderSupplier,
    SubOrderStatus,
    Supplier,
    SupplierType,
)


@dataclass
class PlacedOrder:
    order: PurchaseOrder
    item: PurchaseOrderItem
    sub_order: PurchaseOrderSupplier


@pytest.fixture
def placed_order(session) -> PlacedOrder:
    """An EZ Cards order for 2 x PSN-50, sub-order PROCESSING with a transaction id."""
    supplier = Supplier(name="EZ Cards", slug="ez_cards", supplier_type=SupplierType.EXTERNAL)
    session.add(supplier)
    session.flush()
    product = DigitalProduct(
        supplier_id=supplier.id, sku="PSN-50", name="PSN 50", cost_price=Decimal("45.00"),
    )
    session.add(product)
    session.flush()

    order = PurchaseOrder(
        order_number="PO-20240101-0000ABCD",
        total_price=Decimal("90.00"),
        status=PurchaseOrderStatus.PROCESSING,
    )
    session.add(order)
    item = PurchaseOrderItem(
        purchase_order=order, supplier_id=supplier.id, digital_product_id=product.id,
        product_sku="PSN-50", quantity=2, unit_cost=Decimal("45.00"),
        subtotal=Decimal("90.00"),
    )
    session.add(item)
    sub_order = PurchaseOrderSupplier(
        purchase_order=order, supplier_id=supplier.id,
        transaction_id="TX-100", status=SubOrderStatus.PROCESSING,
    )
    session.add(sub_order)
    session.flush()
    return PlacedOrder(order=order, item=item, sub_order=sub_order)
