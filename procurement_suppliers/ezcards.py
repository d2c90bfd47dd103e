"""
EZ Cards client -- asynchronous supplier.

Orders are acknowledged with a transaction id; codes are released later and
fetched by polling ``GET /v2/orders/{transactionId}/codes``.
"""

from __future__ import annotations

from typing import Any

from procurement_kernel.exceptions import SupplierRequestFailedError
from procurement_kernel.logging_config import get_logger
from procurement_suppliers.base import SupplierApiClient
from procurement_suppliers.types import (
    AsyncLineResult,
    AsyncOrderAck,
    OrderLineRequest,
    SupplierCode,
    SupplierCodeLine,
    VoucherCodeBatch,
)

logger = get_logger("suppliers.ezcards")


class EzCardsClient(SupplierApiClient):
    supplier_name = "ez_cards"

    def _authorization(self) -> str | None:
        if not self._access_token:
            return None
        return f"Bearer {self._access_token}"

    def place_order(
        self, items: list[OrderLineRequest], order_number: str,
    ) -> AsyncOrderAck:
        """Place one order covering every line for this supplier."""
        body = {
            "clientOrderNumber": order_number,
            "enableClientOrderNumberDupCheck": False,
            "products": [
                {"sku": item.sku, "quantity": item.quantity} for item in items
            ],
        }
        response = self.request("POST", "/v2/orders", json=body)
        data = _data(response.payload)

        transaction_id = data.get("transactionId") if isinstance(data, dict) else None
        if transaction_id in (None, ""):
            raise SupplierRequestFailedError(
                self.supplier_name,
                response.status_code,
                "order response has no transactionId",
            )

        try:
            ack = AsyncOrderAck(
                transaction_id=str(transaction_id),
                status=data.get("status"),
                line_results=tuple(
                    AsyncLineResult(
                        sku=str(p.get("sku")),
                        quantity=int(p.get("quantity") or 0),
                        status=p.get("status"),
                    )
                    for p in data.get("products") or []
                ),
            )
        except (TypeError, ValueError, AttributeError):
            raise SupplierRequestFailedError(
                self.supplier_name,
                response.status_code,
                "malformed order response",
            )
        logger.info(
            "ezcards_order_placed",
            extra={
                "order_number": order_number,
                "transaction_id": ack.transaction_id,
                "supplier_status": ack.status,
                "line_count": len(items),
            },
        )
        return ack

    def fetch_voucher_codes(self, transaction_id: str) -> VoucherCodeBatch:
        """Poll an order for released codes."""
        response = self.request("GET", f"/v2/orders/{transaction_id}/codes")
        lines = _data(response.payload) or []
        if not isinstance(lines, list):
            raise SupplierRequestFailedError(
                self.supplier_name,
                response.status_code,
                "codes response data is not a list",
            )

        try:
            items = tuple(_parse_code_line(line) for line in lines)
        except (TypeError, ValueError, AttributeError):
            raise SupplierRequestFailedError(
                self.supplier_name,
                response.status_code,
                "malformed codes response",
            )
        return VoucherCodeBatch(transaction_id=str(transaction_id), items=items)


def _data(payload: Any) -> Any:
    if isinstance(payload, dict):
        return payload.get("data")
    return None


def _parse_code_line(line: dict[str, Any]) -> SupplierCodeLine:
    return SupplierCodeLine(
        sku=str(line.get("sku")),
        codes=tuple(
            SupplierCode(
                stock_id=_optional_str(code.get("stockId")),
                status=code.get("status"),
                redeem_code=_optional_str(code.get("redeemCode")),
                pin_code=_optional_str(code.get("pinCode")),
            )
            for code in line.get("codes") or []
        ),
    )


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
