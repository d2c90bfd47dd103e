"""
Unit tests for compute_overall_status.

Precedence is failed > processing > completed, independent of ordering.
"""

import pytest

from procurement_kernel.models.purchase_order import PurchaseOrderStatus, SubOrderStatus
from procurement_kernel.services.purchase_order_status_service import (
    compute_overall_status,
)

P = SubOrderStatus.PROCESSING
C = SubOrderStatus.COMPLETED
F = SubOrderStatus.FAILED


class TestComputeOverallStatus:

    def test_empty_is_completed(self):
        assert compute_overall_status([]) == PurchaseOrderStatus.COMPLETED

    def test_all_completed(self):
        assert compute_overall_status([C, C]) == PurchaseOrderStatus.COMPLETED

    @pytest.mark.parametrize("statuses", [[C, F], [F, C], [P, F], [F, P, C]])
    def test_any_failed_is_failed(self, statuses):
        assert compute_overall_status(statuses) == PurchaseOrderStatus.FAILED

    @pytest.mark.parametrize("statuses", [[C, P], [P, C], [P, P]])
    def test_processing_without_failure(self, statuses):
        assert compute_overall_status(statuses) == PurchaseOrderStatus.PROCESSING

    def test_accepts_raw_strings(self):
        """Status columns read back from the database are plain strings."""
        assert compute_overall_status(["completed", "processing"]) == (
            PurchaseOrderStatus.PROCESSING
        )

    def test_accepts_generator(self):
        assert compute_overall_status(s for s in [C, F]) == PurchaseOrderStatus.FAILED

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            compute_overall_status(["shipped"])
