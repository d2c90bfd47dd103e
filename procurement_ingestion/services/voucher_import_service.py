"""
VoucherImportService -- operator upload of voucher codes for an order.

Responsibility:
    Accepts an explicit list of codes or a CSV / XLSX / ZIP file, validates
    the whole batch, and persists one AVAILABLE voucher per code against the
    target purchase order.

Architecture position:
    Ingestion > Services.  Uses the kernel's VoucherService for writes and
    flushes in the caller's transaction; the caller commits.

Invariants enforced:
    - All-or-nothing: every validation runs before the first insert.
    - The number of codes equals the order's total item quantity.
    - Codes are trimmed, non-empty, at most 255 characters, unique within
      the batch, and not already stored on any voucher (case-sensitive,
      compared by fingerprint).
    - Imported vouchers have no purchase_order_item_id.

Failure modes:
    - PurchaseOrderNotFoundError for an unknown order.
    - ImportCountMismatchError when the count differs.
    - ValidationFailedError naming the offending row otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from procurement_ingestion.adapters import (
    CodeRow,
    ZipArchiveAdapter,
    spreadsheet_adapter_for,
)
from procurement_kernel.exceptions import (
    ImportCountMismatchError,
    PurchaseOrderNotFoundError,
    ValidationFailedError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.purchase_order import PurchaseOrder
from procurement_kernel.selectors.purchase_order_selector import PurchaseOrderSelector
from procurement_kernel.services.voucher_cipher import VoucherCipher
from procurement_kernel.services.voucher_service import VoucherService

logger = get_logger("ingestion.voucher_import")

MAX_CODE_LENGTH = 255


@dataclass(frozen=True)
class ImportResult:
    purchase_order_id: UUID
    imported_count: int
    sources: tuple[str, ...] = ()


class VoucherImportService:
    """Validates and stores operator-supplied voucher codes."""

    def __init__(self, session: Session, cipher: VoucherCipher):
        self.session = session
        self._cipher = cipher
        self._vouchers = VoucherService(session, cipher)
        self._orders = PurchaseOrderSelector(session)

    def import_codes(self, purchase_order_id: UUID, codes: Iterable[str]) -> ImportResult:
        rows = [
            CodeRow(value=code, row=position)
            for position, code in enumerate(codes, start=1)
        ]
        return self._import(purchase_order_id, rows, sources=())

    def import_file(self, purchase_order_id: UUID, file_path: Path | str) -> ImportResult:
        path = Path(file_path)
        suffix = path.suffix.lower()

        if suffix == ".zip":
            adapter = ZipArchiveAdapter()
            rows = list(adapter.read(path))
            return self._import(purchase_order_id, rows, sources=tuple(adapter.sources))

        spreadsheet = spreadsheet_adapter_for(path.name)
        if spreadsheet is None:
            raise ValidationFailedError(
                f"unsupported file type '{suffix or path.name}'; "
                "use .csv, .xlsx, .xlsm or .zip",
                field="file",
            )
        rows = list(spreadsheet.read(path))
        return self._import(purchase_order_id, rows, sources=(path.name,))

    def _import(
        self,
        purchase_order_id: UUID,
        rows: list[CodeRow],
        sources: tuple[str, ...],
    ) -> ImportResult:
        order = self._orders.load_order(purchase_order_id)
        if order is None:
            raise PurchaseOrderNotFoundError(str(purchase_order_id))

        expected = order.total_quantity
        if len(rows) != expected:
            raise ImportCountMismatchError(expected=expected, received=len(rows))

        codes = self._validate_rows(rows)
        self._persist(order, codes)

        logger.info(
            "vouchers_imported",
            extra={
                "purchase_order_id": str(order.id),
                "order_number": order.order_number,
                "imported_count": len(codes),
                "sources": list(sources),
            },
        )
        return ImportResult(
            purchase_order_id=order.id,
            imported_count=len(codes),
            sources=sources,
        )

    def _validate_rows(self, rows: list[CodeRow]) -> list[str]:
        codes: list[str] = []
        seen: dict[str, CodeRow] = {}

        for row in rows:
            code = "" if row.value is None else str(row.value).strip()
            if not code:
                raise ValidationFailedError(
                    "code is required", field="code", row=row.location,
                )
            if len(code) > MAX_CODE_LENGTH:
                raise ValidationFailedError(
                    f"code must not be longer than {MAX_CODE_LENGTH} characters",
                    field="code",
                    row=row.location,
                )
            if code in seen:
                raise ValidationFailedError(
                    f"code is duplicated in this import (first seen at "
                    f"{_describe(seen[code])})",
                    field="code",
                    row=row.location,
                )
            seen[code] = row
            codes.append(code)

        fingerprints = {self._cipher.fingerprint(c): c for c in codes}
        taken = self._vouchers.existing_fingerprints(list(fingerprints))
        if taken:
            first = next(c for c in codes if self._cipher.fingerprint(c) in taken)
            raise ValidationFailedError(
                "code has already been taken",
                field="code",
                row=seen[first].location,
            )
        return codes

    def _persist(self, order: PurchaseOrder, codes: list[str]) -> None:
        for code in codes:
            self._vouchers.create_available(order, None, code)


def _describe(row: CodeRow) -> str:
    location = row.location
    return f"row {location}" if isinstance(location, int) else location
