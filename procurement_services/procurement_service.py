"""
procurement_services.procurement_service -- public facade of the procurement core.

Responsibility:
    The single object an outer layer (HTTP controller, CLI script, worker)
    talks to.  Owns transaction boundaries: every mutating call opens a
    session_scope(), delegates to a service, converts the result to a frozen
    DTO, and commits.

Architecture position:
    Services -- top of the dependency graph.  Composes the kernel,
    procurement_config, procurement_suppliers, procurement_ingestion and
    procurement_batch.  Nothing imports this module except entry points.

Usage:
    settings = get_settings()
    procurement = ProcurementService.from_settings(settings)

    info = procurement.create_purchase_order([
        OrderLine(supplier_id=..., product_id=..., quantity=3),
    ])
    summary = procurement.reconcile_all_pending()
    procurement.import_vouchers(info.purchase_order_id, codes=["A", "B", "C"])
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path
from uuid import UUID

from sqlalchemy.orm import Session

from procurement_batch.reconciliation import VoucherReconciliationJob
from procurement_batch.types import ReconciliationSummary
from procurement_config.schema import ProcurementSettings
from procurement_ingestion.services.voucher_import_service import (
    ImportResult,
    VoucherImportService,
)
from procurement_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from procurement_kernel.domain.clock import Clock, SystemClock
from procurement_kernel.domain.dtos import OrderLine, PurchaseOrderInfo, RevealedVoucher
from procurement_kernel.exceptions import ValidationFailedError
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.voucher import VoucherAuditAction
from procurement_kernel.services.voucher_audit_service import VoucherAuditService
from procurement_kernel.services.voucher_cipher import VoucherCipher
from procurement_services.purchase_order_service import PurchaseOrderService
from procurement_suppliers.dispatch import SupplierClients

logger = get_logger("services.procurement")


class ProcurementService:
    """Transactional facade over order creation, reconciliation and import.

    Guarantees:
        - Each call is one unit of work (reconciliation: one per sub-order).
        - Callers receive DTOs, never ORM rows.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        suppliers: SupplierClients,
        cipher: VoucherCipher,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._suppliers = suppliers
        self._cipher = cipher
        self._clock = clock or SystemClock()

    @classmethod
    def from_settings(
        cls,
        settings: ProcurementSettings,
        clock: Clock | None = None,
        create_schema: bool = False,
    ) -> ProcurementService:
        """Wire engine, cipher and supplier clients from settings.

        Raises InvalidKeyError when the encryption key is not 32 bytes, so a
        misconfigured process fails at startup.
        """
        cipher = VoucherCipher.from_base64_key(settings.voucher_encryption_key)
        init_engine_from_url(
            settings.database.url,
            echo=settings.database.echo,
            pool_size=settings.database.pool_size,
        )
        if create_schema:
            create_tables()
        logger.info(
            "procurement_service_initialized",
            extra={"create_schema": create_schema},
        )
        return cls(
            session_factory=get_session_factory(),
            suppliers=SupplierClients.from_settings(settings),
            cipher=cipher,
            clock=clock,
        )

    # -----------------------------------------------------------------
    # Orders
    # -----------------------------------------------------------------

    def create_purchase_order(self, lines: list[OrderLine]) -> PurchaseOrderInfo:
        with session_scope(self._session_factory) as session:
            service = PurchaseOrderService(session, self._suppliers, self._cipher, self._clock)
            order = service.create_purchase_order(lines)
            return PurchaseOrderInfo.from_model(order)

    def reconciliation_job(self) -> VoucherReconciliationJob:
        return VoucherReconciliationJob(
            self._session_factory, self._suppliers.ezcards, self._cipher, self._clock,
        )

    def reconcile_all_pending(self) -> ReconciliationSummary:
        return self.reconciliation_job().run()

    # -----------------------------------------------------------------
    # Import
    # -----------------------------------------------------------------

    def import_vouchers(
        self,
        purchase_order_id: UUID,
        codes: Iterable[str] | None = None,
        file_path: Path | str | None = None,
    ) -> ImportResult:
        if (codes is None) == (file_path is None):
            raise ValidationFailedError(
                "provide either codes or a file, not both", field="codes",
            )
        with session_scope(self._session_factory) as session:
            importer = VoucherImportService(session, self._cipher)
            if file_path is not None:
                return importer.import_file(purchase_order_id, file_path)
            return importer.import_codes(purchase_order_id, codes)

    # -----------------------------------------------------------------
    # Voucher display
    # -----------------------------------------------------------------

    def reveal_voucher(
        self,
        voucher_id: UUID,
        actor_id: UUID,
        action: VoucherAuditAction = VoucherAuditAction.VIEWED,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> RevealedVoucher:
        with session_scope(self._session_factory) as session:
            return VoucherAuditService(session, self._cipher).reveal(
                voucher_id, actor_id, action, ip_address, user_agent,
            )

    def record_voucher_copy(
        self,
        voucher_id: UUID,
        actor_id: UUID,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        with session_scope(self._session_factory) as session:
            VoucherAuditService(session, self._cipher).record(
                voucher_id, actor_id, VoucherAuditAction.COPIED, ip_address, user_agent,
            )

    def encrypt(self, plaintext: str) -> str:
        return self._cipher.encrypt(plaintext)

    def decrypt(self, ciphertext: str) -> str:
        return self._cipher.decrypt(ciphertext)

    def safe_decrypt(self, ciphertext: str | None) -> str | None:
        return self._cipher.safe_decrypt(ciphertext)
