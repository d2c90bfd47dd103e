"""Service layer: purchase order orchestration and the transactional facade."""

from procurement_services.procurement_service import ProcurementService
from procurement_services.purchase_order_service import PurchaseOrderService

__all__ = ["ProcurementService", "PurchaseOrderService"]
