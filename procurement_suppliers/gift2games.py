"""
Gift2Games client -- synchronous supplier.

``POST /create_order`` redeems exactly one unit and returns its code in the
same response, so callers invoke ``place_order`` once per unit.
"""

from __future__ import annotations

from procurement_kernel.exceptions import SupplierRequestFailedError
from procurement_kernel.logging_config import get_logger
from procurement_suppliers.base import SupplierApiClient
from procurement_suppliers.types import SyncVoucher

logger = get_logger("suppliers.gift2games")


class Gift2GamesClient(SupplierApiClient):
    supplier_name = "gift2games"

    def place_order(self, sku: str, reference_number: str) -> SyncVoucher:
        body = {
            "productId": int(sku) if sku.isdigit() else sku,
            "referenceNumber": reference_number,
        }
        response = self.request("POST", "create_order", json=body)
        payload = response.payload if isinstance(response.payload, dict) else {}

        if not payload.get("status"):
            error = payload.get("error")
            message = error.get("message") if isinstance(error, dict) else error
            raise SupplierRequestFailedError(
                self.supplier_name,
                response.status_code,
                f"Order creation failed: {message or 'Unknown error'}",
            )

        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise SupplierRequestFailedError(
                self.supplier_name,
                response.status_code,
                "malformed order response",
            )
        code = data.get("serialCode")
        if not code:
            raise SupplierRequestFailedError(
                self.supplier_name,
                response.status_code,
                "order response has no serialCode",
            )

        logger.debug(
            "gift2games_unit_redeemed",
            extra={"reference_number": reference_number, "sku": sku},
        )
        return SyncVoucher(
            code=str(code),
            serial_number=_optional_str(data.get("serialNumber")),
            pin_code=_optional_str(data.get("pinCode")),
        )


def _optional_str(value) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
