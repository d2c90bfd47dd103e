"""
VoucherAuditService -- audited display of voucher secrets.

Responsibility:
    The only read path that returns plaintext voucher codes.  Every reveal
    appends a VoucherAuditLog row naming the actor, the action and the
    client details.

Architecture position:
    Kernel > Services.  Flushes in the caller's transaction.

Invariants enforced:
    - A plaintext code is never returned without an audit row in the same
      transaction.
    - Decryption failures never break the display path: safe_decrypt()
      returns None and the stored value is shown only when it is legacy
      plaintext (never encrypted).
"""

from uuid import UUID

from procurement_kernel.domain.dtos import RevealedVoucher
from procurement_kernel.exceptions import ValidationFailedError, VoucherNotFoundError
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.voucher import (
    Voucher,
    VoucherAuditAction,
    VoucherAuditLog,
)
from procurement_kernel.services.base import BaseService
from procurement_kernel.services.voucher_cipher import VoucherCipher

logger = get_logger("services.voucher_audit")

MAX_IP_ADDRESS_LENGTH = 45


class VoucherAuditService(BaseService[VoucherAuditLog]):

    def __init__(self, session, cipher: VoucherCipher):
        super().__init__(session)
        self._cipher = cipher

    def reveal(
        self,
        voucher_id: UUID,
        actor_id: UUID,
        action: VoucherAuditAction = VoucherAuditAction.VIEWED,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> RevealedVoucher:
        """Decrypt a voucher for display and record who saw it."""
        voucher = self._get_voucher(voucher_id)
        self.record(voucher_id, actor_id, action, ip_address, user_agent)

        return RevealedVoucher(
            voucher_id=voucher.id,
            code=self._display_value(voucher.code),
            pin_code=self._display_value(voucher.pin_code),
            serial_number=voucher.serial_number,
            status=voucher.status_enum.value,
        )

    def record(
        self,
        voucher_id: UUID,
        actor_id: UUID,
        action: VoucherAuditAction,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> VoucherAuditLog:
        """Append an audit row without decrypting (e.g. a copy event)."""
        action = VoucherAuditAction(action)
        if ip_address is not None and len(ip_address) > MAX_IP_ADDRESS_LENGTH:
            raise ValidationFailedError(
                f"ip_address must be at most {MAX_IP_ADDRESS_LENGTH} characters",
                field="ip_address",
            )
        self._get_voucher(voucher_id)

        entry = VoucherAuditLog(
            voucher_id=voucher_id,
            actor_id=actor_id,
            action=action,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "voucher_audit_recorded",
            extra={
                "voucher_id": str(voucher_id),
                "actor_id": str(actor_id),
                "action": action.value,
            },
        )
        return entry

    def _get_voucher(self, voucher_id: UUID) -> Voucher:
        voucher = self.session.get(Voucher, voucher_id)
        if voucher is None:
            raise VoucherNotFoundError(str(voucher_id))
        return voucher

    def _display_value(self, stored: str | None) -> str | None:
        if stored is None:
            return None
        plaintext = self._cipher.safe_decrypt(stored)
        if plaintext is not None:
            return plaintext
        # Rows written before encryption was introduced
        return stored
