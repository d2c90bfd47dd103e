"""
Module: procurement_kernel.models.voucher
Responsibility: ORM persistence for voucher codes bought from suppliers and the
    append-only audit trail of who revealed them.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - code and pin_code are stored ciphertext only (VoucherCipher output).
    - code_fingerprint is the blind index of the plaintext code; equal codes
      within one order are rejected by uq_voucher_order_fingerprint.
    - A supplier stock id appears at most once per order
      (uq_voucher_order_stock).  NULLs never collide.
    - Status never regresses from AVAILABLE to PROCESSING.
    - VoucherAuditLog rows are never updated or deleted.

Failure modes:
    - IntegrityError when two concurrent reconciliation runs insert the same
      code or stock id for one order.
"""

from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procurement_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from procurement_kernel.models.purchase_order import (
        PurchaseOrder,
        PurchaseOrderItem,
    )


class VoucherStatus(str, Enum):
    """
    Delivery status of a voucher.

    State machine:
        PROCESSING -> AVAILABLE
        AVAILABLE: terminal
    """

    AVAILABLE = "available"
    PROCESSING = "processing"


VOUCHER_TRANSITIONS: dict[VoucherStatus, frozenset[VoucherStatus]] = {
    VoucherStatus.PROCESSING: frozenset({VoucherStatus.AVAILABLE}),
    VoucherStatus.AVAILABLE: frozenset(),
}


class VoucherAuditAction(str, Enum):
    """What an operator did with a revealed voucher."""

    REQUESTED = "requested"
    VIEWED = "viewed"
    COPIED = "copied"


class Voucher(TrackedBase):
    """
    A redeemable code delivered by a supplier or imported by an operator.

    Contract:
        A PROCESSING voucher with a NULL code is a placeholder: the supplier
        announced a stock id but has not released the code yet.

    Guarantees:
        - code is NULL or ciphertext; code_fingerprint is set iff code is.
        - purchase_order_item_id is NULL for imported vouchers.
    """

    __tablename__ = "vouchers"

    __table_args__ = (
        UniqueConstraint(
            "purchase_order_id", "code_fingerprint",
            name="uq_voucher_order_fingerprint",
        ),
        UniqueConstraint(
            "purchase_order_id", "stock_id", name="uq_voucher_order_stock",
        ),
        Index("idx_voucher_order", "purchase_order_id"),
        Index("idx_voucher_item", "purchase_order_item_id"),
        Index("idx_voucher_fingerprint", "code_fingerprint"),
        Index("idx_voucher_status", "status"),
    )

    purchase_order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("purchase_orders.id"),
        nullable=False,
    )

    purchase_order_item_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("purchase_order_items.id"),
        nullable=True,
    )

    # Ciphertext (base64 of iv || ciphertext || tag)
    code: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # HMAC-SHA256 hex of the plaintext code
    code_fingerprint: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    status: Mapped[VoucherStatus] = mapped_column(
        String(20),
        nullable=False,
        default=VoucherStatus.PROCESSING,
    )

    serial_number: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    # Ciphertext
    pin_code: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Supplier-side stock identifier
    stock_id: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    purchase_order: Mapped["PurchaseOrder"] = relationship(
        back_populates="vouchers",
    )

    item: Mapped["PurchaseOrderItem | None"] = relationship()

    @property
    def status_enum(self) -> VoucherStatus:
        return VoucherStatus(self.status)

    @property
    def is_placeholder(self) -> bool:
        return self.code is None

    def __repr__(self) -> str:
        return f"<Voucher {self.id} status={self.status_enum.value}>"


class VoucherAuditLog(TrackedBase):
    """
    Append-only record of a voucher code being revealed to a person.

    No update or delete path exists in the services.
    """

    __tablename__ = "voucher_audit_logs"

    __table_args__ = (
        Index("idx_voucher_audit_voucher", "voucher_id"),
        Index("idx_voucher_audit_actor", "actor_id"),
    )

    voucher_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vouchers.id"),
        nullable=False,
    )

    actor_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    action: Mapped[VoucherAuditAction] = mapped_column(
        String(20),
        nullable=False,
    )

    # IPv6 max textual length
    ip_address: Mapped[str | None] = mapped_column(
        String(45),
        nullable=True,
    )

    user_agent: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<VoucherAuditLog {self.voucher_id} {self.action}>"
