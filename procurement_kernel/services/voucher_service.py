"""
VoucherService -- the single write path for Voucher rows.

Responsibility:
    Creates and updates vouchers for all three delivery routes (immediate
    supplier delivery, asynchronous reconciliation, operator import).
    Encrypts codes and PINs with VoucherCipher and maintains the
    code_fingerprint blind index.

Architecture position:
    Kernel > Services.  Flushes in the caller's transaction.

Invariants enforced:
    - Plaintext codes and PINs never reach the database.
    - Upserts match by fingerprint first, then by stock id, before inserting.
    - Voucher transitions follow VOUCHER_TRANSITIONS; AVAILABLE never
      regresses to PROCESSING.

Failure modes:
    - InvalidStatusTransitionError on an attempted regression.
    - IntegrityError from the unique constraints when a concurrent writer
      inserted the same code or stock id first.
"""

from uuid import UUID

from sqlalchemy import func, select

from procurement_kernel.exceptions import InvalidStatusTransitionError
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from procurement_kernel.models.voucher import (
    VOUCHER_TRANSITIONS,
    Voucher,
    VoucherStatus,
)
from procurement_kernel.services.base import BaseService
from procurement_kernel.services.voucher_cipher import VoucherCipher

logger = get_logger("services.voucher")


class VoucherService(BaseService[Voucher]):
    """
    Voucher persistence with encryption and idempotent upserts.

    Contract:
        Constructed with the caller's session and the process cipher.
    """

    def __init__(self, session, cipher: VoucherCipher):
        super().__init__(session)
        self._cipher = cipher

    # -----------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------

    def find_by_code(self, purchase_order_id: UUID, code: str) -> Voucher | None:
        return self.session.scalars(
            select(Voucher).where(
                Voucher.purchase_order_id == purchase_order_id,
                Voucher.code_fingerprint == self._cipher.fingerprint(code),
            )
        ).first()

    def find_by_stock_id(self, purchase_order_id: UUID, stock_id: str) -> Voucher | None:
        return self.session.scalars(
            select(Voucher).where(
                Voucher.purchase_order_id == purchase_order_id,
                Voucher.stock_id == stock_id,
            )
        ).first()

    def existing_fingerprints(self, fingerprints: list[str]) -> set[str]:
        """Return which of ``fingerprints`` already exist on any voucher."""
        if not fingerprints:
            return set()
        rows = self.session.scalars(
            select(Voucher.code_fingerprint).where(
                Voucher.code_fingerprint.in_(fingerprints)
            )
        )
        return set(rows)

    def count_available(self, item_ids: list[UUID]) -> int:
        """Count AVAILABLE vouchers attached to the given order items."""
        if not item_ids:
            return 0
        return self.session.scalar(
            select(func.count(Voucher.id)).where(
                Voucher.purchase_order_item_id.in_(item_ids),
                Voucher.status == VoucherStatus.AVAILABLE.value,
            )
        ) or 0

    # -----------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------

    def create_available(
        self,
        order: PurchaseOrder,
        item: PurchaseOrderItem | None,
        code: str,
        serial_number: str | None = None,
        pin_code: str | None = None,
        stock_id: str | None = None,
    ) -> Voucher:
        """Insert a delivered voucher with its code encrypted."""
        voucher = Voucher(
            purchase_order=order,
            purchase_order_item_id=item.id if item is not None else None,
            code=self._cipher.encrypt(code),
            code_fingerprint=self._cipher.fingerprint(code),
            status=VoucherStatus.AVAILABLE,
            serial_number=serial_number,
            pin_code=self._cipher.encrypt_optional(pin_code),
            stock_id=stock_id,
        )
        self.session.add(voucher)
        self.session.flush()
        return voucher

    def record_supplier_code(
        self,
        order: PurchaseOrder,
        item: PurchaseOrderItem,
        code: str,
        pin_code: str | None = None,
        stock_id: str | None = None,
        serial_number: str | None = None,
    ) -> bool:
        """
        Upsert a voucher whose code the supplier has released.

        Matches an existing row by code, else by stock id.  Returns True
        when a new row was inserted.
        """
        existing = self.find_by_code(order.id, code)
        if existing is None and stock_id:
            existing = self.find_by_stock_id(order.id, stock_id)

        if existing is None:
            self.create_available(
                order, item, code,
                serial_number=serial_number,
                pin_code=pin_code,
                stock_id=stock_id,
            )
            return True

        existing.code = self._cipher.encrypt(code)
        existing.code_fingerprint = self._cipher.fingerprint(code)
        if pin_code:
            existing.pin_code = self._cipher.encrypt(pin_code)
        if stock_id:
            existing.stock_id = stock_id
        if serial_number:
            existing.serial_number = serial_number
        if existing.purchase_order_item_id is None:
            existing.purchase_order_item_id = item.id
        self.transition(existing, VoucherStatus.AVAILABLE)
        self.session.flush()
        return False

    def ensure_placeholder(
        self,
        order: PurchaseOrder,
        item: PurchaseOrderItem,
        stock_id: str,
    ) -> bool:
        """
        Insert a code-less PROCESSING voucher for ``stock_id`` unless one
        already exists.  Returns True when a row was inserted.
        """
        if self.find_by_stock_id(order.id, stock_id) is not None:
            return False

        self.session.add(
            Voucher(
                purchase_order=order,
                purchase_order_item_id=item.id,
                status=VoucherStatus.PROCESSING,
                stock_id=stock_id,
            )
        )
        self.session.flush()
        logger.debug(
            "voucher_placeholder_created",
            extra={"purchase_order_id": str(order.id), "stock_id": stock_id},
        )
        return True

    def transition(self, voucher: Voucher, target: VoucherStatus) -> bool:
        """Apply a voucher status change; same-state is a no-op."""
        current = voucher.status_enum
        if current == target:
            return False
        if target not in VOUCHER_TRANSITIONS.get(current, frozenset()):
            logger.warning(
                "voucher_transition_rejected",
                extra={
                    "voucher_id": str(voucher.id),
                    "from_status": current.value,
                    "to_status": target.value,
                },
            )
            raise InvalidStatusTransitionError(
                "voucher", str(voucher.id), current.value, target.value,
            )
        voucher.status = target
        return True
