"""
procurement_services.purchase_order_service -- purchase order creation.

Responsibility:
    Validates requested lines, prices them from the catalogue, persists the
    order with its items, places orders with each external supplier, records
    sub-orders and immediately delivered vouchers, and settles the overall
    status.

Architecture position:
    Services -- orchestration over the kernel and the supplier clients.
    Runs inside the caller's transaction (flush only).

Invariants enforced:
    - Validation completes before any write or supplier call.
    - total_price == sum(item.subtotal); subtotal == quantity * unit_cost.
    - One supplier's failure never aborts the other supplier groups:
      SupplierRequestFailedError becomes a FAILED sub-order.
    - Synchronous supplier units are independent: a failed unit yields no
      voucher and does not undo units already delivered.
    - Database errors surface as PersistenceFailedError; the caller's scope
      rolls the whole order back.

Failure modes:
    - ValidationFailedError, SupplierNotConfiguredError, ProductNotFoundError
      before any side effect.
    - PersistenceFailedError on SQLAlchemyError.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from procurement_kernel.domain.clock import Clock, SystemClock
from procurement_kernel.domain.dtos import OrderLine, ProductInfo, SupplierInfo
from procurement_kernel.domain.order_number import generate_order_number
from procurement_kernel.exceptions import (
    PersistenceFailedError,
    ProductNotFoundError,
    SupplierNotConfiguredError,
    SupplierRequestFailedError,
    ValidationFailedError,
)
from procurement_kernel.logging_config import LogContext, get_logger
from procurement_kernel.models.purchase_order import (
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderStatus,
    PurchaseOrderSupplier,
    SubOrderStatus,
)
from procurement_kernel.selectors.catalog_selector import CatalogSelector
from procurement_kernel.services.purchase_order_status_service import (
    PurchaseOrderStatusService,
    compute_overall_status,
)
from procurement_kernel.services.voucher_cipher import VoucherCipher
from procurement_kernel.services.voucher_service import VoucherService
from procurement_suppliers.dispatch import SupplierClients
from procurement_suppliers.types import OrderLineRequest, SupplierSlug, SyncVoucher

logger = get_logger("services.purchase_order")

_CENT = Decimal("0.01")


@dataclass(frozen=True)
class _PricedLine:
    supplier: SupplierInfo
    product: ProductInfo
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return (self.product.unit_cost * self.quantity).quantize(_CENT, ROUND_HALF_UP)


class PurchaseOrderService:
    """Creates purchase orders across internal and external suppliers.

    Non-goals:
        - Does NOT commit; ProcurementService owns the transaction.
        - Does NOT poll asynchronous suppliers; see VoucherReconciliationJob.
    """

    def __init__(
        self,
        session: Session,
        suppliers: SupplierClients,
        cipher: VoucherCipher,
        clock: Clock | None = None,
    ):
        self.session = session
        self._suppliers = suppliers
        self._clock = clock or SystemClock()
        self._catalog = CatalogSelector(session)
        self._vouchers = VoucherService(session, cipher)
        self._status = PurchaseOrderStatusService(session)

    def create_purchase_order(self, lines: list[OrderLine]) -> PurchaseOrder:
        priced = self._validate(lines)

        groups: dict[UUID, list[_PricedLine]] = {}
        for line in priced:
            groups.setdefault(line.supplier.supplier_id, []).append(line)

        total = sum((line.subtotal for line in priced), Decimal("0"))

        try:
            order = PurchaseOrder(
                order_number=generate_order_number(self._clock),
                total_price=total,
                status=PurchaseOrderStatus.PENDING,
            )
            self.session.add(order)
            items_by_supplier: dict[UUID, list[PurchaseOrderItem]] = {}
            for line in priced:
                item = PurchaseOrderItem(
                    purchase_order=order,
                    supplier_id=line.supplier.supplier_id,
                    digital_product_id=line.product.product_id,
                    product_sku=line.product.sku,
                    quantity=line.quantity,
                    unit_cost=line.product.unit_cost,
                    subtotal=line.subtotal,
                )
                self.session.add(item)
                items_by_supplier.setdefault(line.supplier.supplier_id, []).append(item)
            self.session.flush()

            with LogContext.bind(purchase_order_id=order.id, order_number=order.order_number):
                logger.info(
                    "purchase_order_created",
                    extra={
                        "total_price": total,
                        "line_count": len(priced),
                        "supplier_count": len(groups),
                    },
                )
                for supplier_id, group in groups.items():
                    self._fulfil_group(order, group[0].supplier, items_by_supplier[supplier_id])

                if order.sub_orders:
                    order.status = compute_overall_status(s.status for s in order.sub_orders)
                else:
                    order.status = PurchaseOrderStatus.COMPLETED
                self.session.flush()

                logger.info(
                    "purchase_order_settled",
                    extra={"status": order.status_enum.value},
                )
            return order
        except SQLAlchemyError as exc:
            logger.error("purchase_order_persistence_failed", exc_info=True)
            raise PersistenceFailedError("create_purchase_order", str(exc)) from exc

    # -----------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------

    def _validate(self, lines: list[OrderLine]) -> list[_PricedLine]:
        if not lines:
            raise ValidationFailedError("at least one line is required", field="lines")

        priced: list[_PricedLine] = []
        seen_skus: set[tuple[UUID, str]] = set()

        for index, line in enumerate(lines):
            field = f"lines[{index}]"
            if line.supplier_id is None:
                raise ValidationFailedError("supplier_id is required", field=f"{field}.supplier_id")
            if line.product_id is None:
                raise ValidationFailedError("product_id is required", field=f"{field}.product_id")
            quantity = line.quantity
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise ValidationFailedError(
                    "quantity must be an integer of at least 1",
                    field=f"{field}.quantity",
                )

            supplier = self._catalog.find_supplier(line.supplier_id)
            if supplier is None:
                raise SupplierNotConfiguredError(str(line.supplier_id))
            if supplier.is_external:
                SupplierSlug.parse(supplier.slug)

            product = self._catalog.find_product(line.product_id)
            if product is None:
                raise ProductNotFoundError(str(line.product_id))
            if product.supplier_id != supplier.supplier_id:
                raise ValidationFailedError(
                    f"product {product.product_id} is not sold by supplier "
                    f"{supplier.supplier_id}",
                    field=f"{field}.product_id",
                )

            key = (supplier.supplier_id, product.sku)
            if key in seen_skus:
                raise ValidationFailedError(
                    f"SKU {product.sku} appears more than once for supplier "
                    f"{supplier.name}; combine the lines",
                    field=f"{field}.product_id",
                )
            seen_skus.add(key)

            priced.append(_PricedLine(supplier=supplier, product=product, quantity=quantity))
        return priced

    # -----------------------------------------------------------------
    # Supplier dispatch
    # -----------------------------------------------------------------

    def _fulfil_group(
        self,
        order: PurchaseOrder,
        supplier: SupplierInfo,
        items: list[PurchaseOrderItem],
    ) -> None:
        if not supplier.is_external:
            logger.info(
                "internal_supplier_group_ready",
                extra={"supplier_id": str(supplier.supplier_id), "item_count": len(items)},
            )
            return

        slug = SupplierSlug.parse(supplier.slug)
        with LogContext.bind(supplier=slug.value):
            if slug is SupplierSlug.GIFT2GAMES:
                self._place_sync(order, supplier, items)
            else:
                self._place_async(order, supplier, items)

    def _place_async(
        self,
        order: PurchaseOrder,
        supplier: SupplierInfo,
        items: list[PurchaseOrderItem],
    ) -> PurchaseOrderSupplier:
        sub_order = PurchaseOrderSupplier(
            purchase_order=order,
            supplier_id=supplier.supplier_id,
            status=SubOrderStatus.PROCESSING,
        )
        self.session.add(sub_order)
        self.session.flush()

        try:
            ack = self._suppliers.ezcards.place_order(
                [OrderLineRequest(sku=i.product_sku, quantity=i.quantity) for i in items],
                order.order_number,
            )
        except SupplierRequestFailedError as exc:
            logger.warning(
                "supplier_order_failed",
                extra={"status_code": exc.status_code, "error": str(exc)},
            )
            self._status.transition_sub_order(sub_order, SubOrderStatus.FAILED, reason=str(exc))
            return sub_order

        sub_order.transaction_id = ack.transaction_id
        self.session.flush()
        return sub_order

    def _place_sync(
        self,
        order: PurchaseOrder,
        supplier: SupplierInfo,
        items: list[PurchaseOrderItem],
    ) -> PurchaseOrderSupplier:
        sub_order = PurchaseOrderSupplier(
            purchase_order=order,
            supplier_id=supplier.supplier_id,
            status=SubOrderStatus.PROCESSING,
        )
        self.session.add(sub_order)
        self.session.flush()

        deliveries: list[tuple[str, SyncVoucher]] = []
        last_error: str | None = None
        unit = 0
        for item in items:
            for _ in range(item.quantity):
                unit += 1
                reference = f"{order.order_number}-{unit}"
                try:
                    voucher = self._suppliers.gift2games.place_order(item.product_sku, reference)
                except SupplierRequestFailedError as exc:
                    last_error = str(exc)
                    logger.warning(
                        "supplier_unit_failed",
                        extra={
                            "sku": item.product_sku,
                            "reference_number": reference,
                            "status_code": exc.status_code,
                            "error": last_error,
                        },
                    )
                    continue
                deliveries.append((item.product_sku, voucher))

        delivered = self._store_sync_vouchers(order, items, deliveries)
        ordered = sum(item.quantity for item in items)

        if delivered >= ordered:
            self._status.transition_sub_order(sub_order, SubOrderStatus.COMPLETED)
        else:
            reason = f"delivered {delivered} of {ordered} units"
            if last_error:
                reason = f"{reason}: {last_error}"
            self._status.transition_sub_order(sub_order, SubOrderStatus.FAILED, reason=reason)
        return sub_order

    def _store_sync_vouchers(
        self,
        order: PurchaseOrder,
        items: list[PurchaseOrderItem],
        deliveries: list[tuple[str, SyncVoucher]],
    ) -> int:
        items_by_sku = {item.product_sku: item for item in items}
        received: Counter[str] = Counter()
        stored = 0

        for sku, voucher in deliveries:
            item = items_by_sku.get(sku)
            if item is None:
                logger.warning("supplier_voucher_unmatched_sku", extra={"sku": sku})
                continue

            received[sku] += 1
            if received[sku] > item.quantity:
                logger.warning(
                    "supplier_over_delivery",
                    extra={
                        "sku": sku,
                        "ordered_quantity": item.quantity,
                        "received_count": received[sku],
                    },
                )

            self._vouchers.create_available(
                order, item, voucher.code,
                serial_number=voucher.serial_number,
                pin_code=voucher.pin_code,
            )
            stored += 1

        logger.info(
            "supplier_vouchers_stored",
            extra={"stored": stored, "ordered": sum(i.quantity for i in items)},
        )
        return stored
