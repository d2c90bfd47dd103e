"""Scheduled voucher reconciliation for asynchronous suppliers."""

from procurement_batch.reconciliation import VoucherReconciliationJob
from procurement_batch.runner import ReconciliationRunner
from procurement_batch.types import (
    ReconciliationError,
    ReconciliationSummary,
    SubOrderOutcome,
    SubOrderResult,
)

__all__ = [
    "VoucherReconciliationJob",
    "ReconciliationRunner",
    "ReconciliationSummary",
    "ReconciliationError",
    "SubOrderOutcome",
    "SubOrderResult",
]
