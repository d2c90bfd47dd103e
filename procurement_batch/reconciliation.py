"""
VoucherReconciliationJob -- poll the asynchronous supplier for released codes.

Contract:
    ``run()`` finds every EZ Cards sub-order that is PROCESSING with a
    transaction id, fetches its codes, upserts vouchers, completes the
    sub-order once enough codes are available, and returns a
    ReconciliationSummary.  Safe to run repeatedly and concurrently.

Architecture: procurement_batch.  Owns its transactions through
    session_scope(); one transaction per sub-order.

Invariants enforced:
    - Idempotent recording: vouchers are matched by code fingerprint, then
      by stock id, before any insert.  The unique constraints on vouchers
      back this up when two runs overlap.
    - Failure isolation: an exception in one sub-order rolls back only that
      sub-order and is reported in the summary.
    - A sub-order is re-read inside its transaction and skipped if it is no
      longer PROCESSING.
    - A 4xx from the supplier fails the sub-order; a 5xx or connection error
      leaves it PROCESSING for the next run.
"""

from __future__ import annotations

from typing import Callable
from uuid import uuid4

from sqlalchemy.orm import Session

from procurement_batch.types import (
    ReconciliationError,
    ReconciliationSummary,
    SubOrderOutcome,
    SubOrderResult,
)
from procurement_kernel.db.engine import session_scope
from procurement_kernel.domain.clock import Clock, SystemClock
from procurement_kernel.exceptions import SupplierRequestFailedError
from procurement_kernel.logging_config import LogContext, get_logger
from procurement_kernel.models.purchase_order import (
    PurchaseOrderSupplier,
    SubOrderStatus,
)
from procurement_kernel.selectors.purchase_order_selector import (
    PendingSubOrder,
    PurchaseOrderSelector,
)
from procurement_kernel.services.purchase_order_status_service import (
    PurchaseOrderStatusService,
)
from procurement_kernel.services.voucher_cipher import VoucherCipher
from procurement_kernel.services.voucher_service import VoucherService
from procurement_suppliers.ezcards import EzCardsClient
from procurement_suppliers.types import SupplierSlug, VoucherCodeBatch

logger = get_logger("batch.reconciliation")


class VoucherReconciliationJob:
    """Reconciles pending EZ Cards sub-orders.

    Non-goals:
        - Does NOT schedule itself; see ReconciliationRunner or the
          reconcile_vouchers script.
        - Does NOT retry within a run; the next run is the retry.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        ezcards_client: EzCardsClient,
        cipher: VoucherCipher,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._client = ezcards_client
        self._cipher = cipher
        self._clock = clock or SystemClock()

    def run(self) -> ReconciliationSummary:
        run_id = uuid4()
        started_at = self._clock.now()

        with LogContext.bind(job_run_id=run_id):
            with session_scope(self._session_factory) as session:
                pending = PurchaseOrderSelector(session).pending_sub_orders(
                    SupplierSlug.EZ_CARDS.value
                )

            logger.info(
                "reconciliation_started",
                extra={"total_orders": len(pending), "started_at": started_at},
            )

            processed = skipped = failed = added = completed = 0
            errors: list[ReconciliationError] = []

            for entry in pending:
                with LogContext.bind(
                    purchase_order_id=entry.purchase_order_id,
                    order_number=entry.order_number,
                    supplier=SupplierSlug.EZ_CARDS.value,
                ):
                    try:
                        result = self.reconcile_sub_order(entry)
                    except Exception as exc:
                        failed += 1
                        errors.append(
                            ReconciliationError(
                                purchase_order_id=entry.purchase_order_id,
                                order_number=entry.order_number,
                                error=str(exc),
                            )
                        )
                        logger.error(
                            "reconciliation_sub_order_failed",
                            extra={"transaction_id": entry.transaction_id},
                            exc_info=True,
                        )
                        if (
                            isinstance(exc, SupplierRequestFailedError)
                            and exc.is_client_error
                        ):
                            self._mark_failed(entry, str(exc))
                        continue

                if result.outcome is SubOrderOutcome.SKIPPED:
                    skipped += 1
                else:
                    processed += 1
                    added += result.vouchers_added
                    completed += int(result.completed)

            summary = ReconciliationSummary(
                total_orders=len(pending),
                processed_orders=processed,
                skipped_orders=skipped,
                failed_orders=failed,
                total_vouchers_added=added,
                completed_orders=completed,
                errors=tuple(errors),
            )
            logger.info(
                "reconciliation_finished",
                extra={
                    "total_orders": summary.total_orders,
                    "processed_orders": summary.processed_orders,
                    "skipped_orders": summary.skipped_orders,
                    "failed_orders": summary.failed_orders,
                    "total_vouchers_added": summary.total_vouchers_added,
                    "completed_orders": summary.completed_orders,
                },
            )
            return summary

    def reconcile_sub_order(self, entry: PendingSubOrder) -> SubOrderResult:
        """Fetch and record codes for one sub-order in its own transaction."""
        batch = self._client.fetch_voucher_codes(entry.transaction_id)
        if batch.is_empty:
            logger.info(
                "reconciliation_no_codes_yet",
                extra={"transaction_id": entry.transaction_id},
            )
            return SubOrderResult(SubOrderOutcome.SKIPPED)

        with session_scope(self._session_factory) as session:
            sub_order = PurchaseOrderSelector(session).load_sub_order(entry.sub_order_id)
            if sub_order is None or sub_order.status_enum != SubOrderStatus.PROCESSING:
                logger.info(
                    "reconciliation_sub_order_already_settled",
                    extra={"sub_order_id": str(entry.sub_order_id)},
                )
                return SubOrderResult(SubOrderOutcome.SKIPPED)

            added = self._record_codes(session, sub_order, batch)
            is_complete = self._complete_if_delivered(session, sub_order)

        return SubOrderResult(
            SubOrderOutcome.PROCESSED, vouchers_added=added, completed=is_complete,
        )

    def _record_codes(
        self,
        session: Session,
        sub_order: PurchaseOrderSupplier,
        batch: VoucherCodeBatch,
    ) -> int:
        vouchers = VoucherService(session, self._cipher)
        order = sub_order.purchase_order
        items_by_sku = {item.product_sku: item for item in sub_order.items}
        added = 0

        for line in batch.items:
            item = items_by_sku.get(line.sku)
            if item is None:
                logger.warning(
                    "reconciliation_unmatched_sku",
                    extra={"sku": line.sku, "transaction_id": sub_order.transaction_id},
                )
                continue

            for code in line.codes:
                if code.has_code:
                    if vouchers.record_supplier_code(
                        order, item, code.redeem_code,
                        pin_code=code.pin_code,
                        stock_id=code.stock_id,
                    ):
                        added += 1
                elif code.stock_id:
                    if vouchers.ensure_placeholder(order, item, code.stock_id):
                        added += 1
                else:
                    logger.warning(
                        "reconciliation_code_entry_skipped",
                        extra={"sku": line.sku, "supplier_status": code.status},
                    )
        return added

    def _complete_if_delivered(
        self, session: Session, sub_order: PurchaseOrderSupplier,
    ) -> bool:
        items = sub_order.items
        ordered = sum(item.quantity for item in items)
        available = VoucherService(session, self._cipher).count_available(
            [item.id for item in items]
        )
        if available < ordered:
            logger.info(
                "reconciliation_sub_order_pending",
                extra={
                    "transaction_id": sub_order.transaction_id,
                    "available": available,
                    "ordered": ordered,
                },
            )
            return False

        status = PurchaseOrderStatusService(session)
        status.transition_sub_order(sub_order, SubOrderStatus.COMPLETED)
        status.refresh(sub_order.purchase_order)
        return True

    def _mark_failed(self, entry: PendingSubOrder, reason: str) -> None:
        try:
            with session_scope(self._session_factory) as session:
                sub_order = PurchaseOrderSelector(session).load_sub_order(entry.sub_order_id)
                if sub_order is None or sub_order.status_enum != SubOrderStatus.PROCESSING:
                    return
                status = PurchaseOrderStatusService(session)
                status.transition_sub_order(sub_order, SubOrderStatus.FAILED, reason=reason)
                status.refresh(sub_order.purchase_order)
        except Exception:
            logger.exception(
                "reconciliation_mark_failed_error",
                extra={"sub_order_id": str(entry.sub_order_id)},
            )
