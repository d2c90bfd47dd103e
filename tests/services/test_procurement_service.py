"""
Tests for the ProcurementService facade.

Each call must be one committed unit of work returning DTOs; failures must
roll back everything the call wrote.
"""

import base64
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from procurement_config.schema import DatabaseSettings, ProcurementSettings
from procurement_kernel.db.engine import get_session_factory, reset_engine, session_scope
from procurement_kernel.domain.dtos import OrderLine, PurchaseOrderInfo
from procurement_kernel.exceptions import (
    ImportCountMismatchError,
    InvalidKeyError,
    ValidationFailedError,
)
from procurement_kernel.models import PurchaseOrder, Voucher, VoucherAuditLog
from procurement_kernel.services.voucher_cipher import VoucherCipher
from procurement_services.procurement_service import ProcurementService
from procurement_suppliers.types import AsyncOrderAck, SyncVoucher

ACTOR_ID = uuid4()


@pytest.fixture
def procurement(session_factory, supplier_clients, cipher, clock):
    return ProcurementService(session_factory, supplier_clients, cipher, clock)


@pytest.fixture
def warehouse_product(internal_supplier, make_product):
    return internal_supplier, make_product(internal_supplier, "STEAM-20", "18.00")


def _count(session_factory, model) -> int:
    with session_scope(session_factory) as session:
        return session.scalar(select(func.count(model.id)))


class TestCreatePurchaseOrder:

    def test_returns_committed_dto(self, procurement, session_factory, warehouse_product):
        supplier_id, product_id = warehouse_product

        info = procurement.create_purchase_order([OrderLine(supplier_id, product_id, 2)])

        assert isinstance(info, PurchaseOrderInfo)
        assert info.status == "completed"
        assert info.total_price == Decimal("36.00")
        assert info.items[0].sku == "STEAM-20"
        with session_scope(session_factory) as session:
            stored = session.get(PurchaseOrder, info.purchase_order_id)
            assert stored.order_number == info.order_number

    def test_sync_supplier_vouchers_counted(
        self, procurement, supplier_clients, gift2games_supplier, make_product,
    ):
        product_id = make_product(gift2games_supplier, "1001", "12.50")
        supplier_clients.gift2games.place_order.side_effect = [
            SyncVoucher(code="G-1"), SyncVoucher(code="G-2"),
        ]

        info = procurement.create_purchase_order([OrderLine(gift2games_supplier, product_id, 2)])

        assert info.voucher_count == 2
        assert info.sub_order_for(gift2games_supplier).status == "completed"

    def test_async_supplier_sub_order(
        self, procurement, supplier_clients, ezcards_supplier, make_product,
    ):
        product_id = make_product(ezcards_supplier, "PSN-50", "45.00")
        supplier_clients.ezcards.place_order.return_value = AsyncOrderAck(
            transaction_id="TX-9", status="PROCESSING",
        )

        info = procurement.create_purchase_order([OrderLine(ezcards_supplier, product_id, 1)])

        sub_order = info.sub_order_for(ezcards_supplier)
        assert sub_order.transaction_id == "TX-9"
        assert sub_order.status == "processing"
        assert info.status == "processing"

    def test_validation_failure_writes_nothing(self, procurement, session_factory, warehouse_product):
        supplier_id, product_id = warehouse_product
        with pytest.raises(ValidationFailedError):
            procurement.create_purchase_order([OrderLine(supplier_id, product_id, 0)])
        assert _count(session_factory, PurchaseOrder) == 0


class TestImportVouchers:

    def test_requires_exactly_one_source(self, procurement):
        with pytest.raises(ValidationFailedError):
            procurement.import_vouchers(uuid4())
        with pytest.raises(ValidationFailedError):
            procurement.import_vouchers(uuid4(), codes=["A"], file_path="codes.csv")

    def test_import_codes_commits(self, procurement, session_factory, warehouse_product):
        supplier_id, product_id = warehouse_product
        info = procurement.create_purchase_order([OrderLine(supplier_id, product_id, 2)])

        result = procurement.import_vouchers(info.purchase_order_id, codes=["A-1", "A-2"])

        assert result.imported_count == 2
        assert _count(session_factory, Voucher) == 2

    def test_failed_import_rolls_back(self, procurement, session_factory, warehouse_product):
        supplier_id, product_id = warehouse_product
        info = procurement.create_purchase_order([OrderLine(supplier_id, product_id, 2)])

        with pytest.raises(ImportCountMismatchError):
            procurement.import_vouchers(info.purchase_order_id, codes=["A-1"])
        assert _count(session_factory, Voucher) == 0


class TestVoucherDisplay:

    def _voucher_id(self, procurement, session_factory, warehouse_product):
        supplier_id, product_id = warehouse_product
        info = procurement.create_purchase_order([OrderLine(supplier_id, product_id, 1)])
        procurement.import_vouchers(info.purchase_order_id, codes=["SECRET-1"])
        with session_scope(session_factory) as session:
            return session.scalars(select(Voucher.id)).one()

    def test_reveal_records_audit(self, procurement, session_factory, warehouse_product):
        voucher_id = self._voucher_id(procurement, session_factory, warehouse_product)

        revealed = procurement.reveal_voucher(voucher_id, ACTOR_ID, ip_address="127.0.0.1")

        assert revealed.code == "SECRET-1"
        assert _count(session_factory, VoucherAuditLog) == 1

    def test_record_copy(self, procurement, session_factory, warehouse_product):
        voucher_id = self._voucher_id(procurement, session_factory, warehouse_product)
        procurement.record_voucher_copy(voucher_id, ACTOR_ID)
        with session_scope(session_factory) as session:
            assert session.scalars(select(VoucherAuditLog.action)).one() == "copied"


class TestCipherPassthrough:

    def test_encrypt_decrypt(self, procurement):
        assert procurement.decrypt(procurement.encrypt("CODE")) == "CODE"

    def test_safe_decrypt(self, procurement):
        assert procurement.safe_decrypt("not-ciphertext") is None


class TestFromSettings:

    @pytest.fixture(autouse=True)
    def _reset_engine(self):
        yield
        reset_engine()

    def test_wires_engine_and_schema(self):
        settings = ProcurementSettings(
            voucher_encryption_key=VoucherCipher.generate_key(),
            database=DatabaseSettings(url="sqlite://"),
        )

        procurement = ProcurementService.from_settings(settings, create_schema=True)

        with session_scope(get_session_factory()) as session:
            assert session.scalar(select(func.count(PurchaseOrder.id))) == 0
        assert procurement.decrypt(procurement.encrypt("X")) == "X"

    def test_invalid_key_fails_fast(self):
        settings = ProcurementSettings(
            voucher_encryption_key=base64.b64encode(b"too-short").decode(),
            database=DatabaseSettings(url="sqlite://"),
        )
        with pytest.raises(InvalidKeyError):
            ProcurementService.from_settings(settings)
