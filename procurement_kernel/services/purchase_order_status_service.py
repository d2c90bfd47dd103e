"""
PurchaseOrderStatusService -- derive an order's status from its sub-orders.

Responsibility:
    Owns the two state machines around fulfilment: the aggregation rule
    that turns sub-order statuses into one purchase order status, and the
    explicit sub-order transition table.

Architecture position:
    Kernel > Services.  compute_overall_status() is pure; the service
    methods mutate ORM rows and flush in the caller's transaction.

Invariants enforced:
    - failed beats processing beats completed, regardless of ordering.
    - An empty set of sub-orders aggregates to completed.
    - A CANCELLED order is never overwritten by aggregation.
    - Sub-order transitions follow SUB_ORDER_TRANSITIONS; a transition to
      the current state is a no-op.

Failure modes:
    - InvalidStatusTransitionError for any transition outside the table
      (e.g. completed -> processing, failed -> completed).
"""

from collections.abc import Iterable

from procurement_kernel.exceptions import InvalidStatusTransitionError
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.purchase_order import (
    SUB_ORDER_TRANSITIONS,
    PurchaseOrder,
    PurchaseOrderStatus,
    PurchaseOrderSupplier,
    SubOrderStatus,
)
from procurement_kernel.services.base import BaseService

logger = get_logger("services.purchase_order_status")


def compute_overall_status(
    statuses: Iterable[SubOrderStatus | str],
) -> PurchaseOrderStatus:
    """Aggregate sub-order statuses into one purchase order status."""
    seen = {SubOrderStatus(s) for s in statuses}
    if SubOrderStatus.FAILED in seen:
        return PurchaseOrderStatus.FAILED
    if SubOrderStatus.PROCESSING in seen:
        return PurchaseOrderStatus.PROCESSING
    return PurchaseOrderStatus.COMPLETED


class PurchaseOrderStatusService(BaseService[PurchaseOrder]):
    """
    Applies status aggregation and sub-order transitions.

    Guarantees:
        - refresh() is idempotent.
        - transition_sub_order() logs every accepted change and every
          rejected attempt.
    """

    def refresh(self, order: PurchaseOrder) -> PurchaseOrderStatus:
        """
        Recompute ``order.status`` from its sub-orders.

        Orders without sub-orders keep their current status.
        """
        current = order.status_enum
        if current == PurchaseOrderStatus.CANCELLED:
            return current
        if not order.sub_orders:
            return current

        new_status = compute_overall_status(s.status for s in order.sub_orders)
        if new_status != current:
            order.status = new_status
            self.session.flush()
            logger.info(
                "purchase_order_status_changed",
                extra={
                    "purchase_order_id": str(order.id),
                    "order_number": order.order_number,
                    "from_status": current.value,
                    "to_status": new_status.value,
                },
            )
        return new_status

    def transition_sub_order(
        self,
        sub_order: PurchaseOrderSupplier,
        target: SubOrderStatus,
        reason: str | None = None,
    ) -> bool:
        """
        Move a sub-order to ``target``.

        Returns True if the status changed, False for a same-state no-op.
        """
        current = sub_order.status_enum
        if current == target:
            return False

        allowed = SUB_ORDER_TRANSITIONS.get(current, frozenset())
        if target not in allowed:
            logger.warning(
                "sub_order_transition_rejected",
                extra={
                    "sub_order_id": str(sub_order.id),
                    "from_status": current.value,
                    "to_status": target.value,
                },
            )
            raise InvalidStatusTransitionError(
                "sub-order", str(sub_order.id), current.value, target.value,
            )

        sub_order.status = target
        if target == SubOrderStatus.FAILED:
            sub_order.failure_reason = reason
        self.session.flush()

        logger.info(
            "sub_order_transitioned",
            extra={
                "sub_order_id": str(sub_order.id),
                "transaction_id": sub_order.transaction_id,
                "from_status": current.value,
                "to_status": target.value,
            },
        )
        return True
