"""
Tests for PurchaseOrderService.create_purchase_order.

Supplier clients are mocks; the database is real (in-memory SQLite).

Covers:
- Validation before any side effect
- Pricing, grouping and totals
- Internal, synchronous (Gift2Games) and asynchronous (EZ Cards) routing
- Per-supplier failure isolation and overall status
- Persistence failure translation
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from procurement_kernel.domain.dtos import OrderLine
from procurement_kernel.exceptions import (
    PersistenceFailedError,
    ProductNotFoundError,
    SupplierNotConfiguredError,
    SupplierRequestFailedError,
    ValidationFailedError,
)
from procurement_kernel.models import (
    DigitalProduct,
    PurchaseOrder,
    PurchaseOrderStatus,
    SubOrderStatus,
    Supplier,
    SupplierType,
    Voucher,
    VoucherStatus,
)
from procurement_kernel.services.voucher_service import VoucherService
from procurement_services.purchase_order_service import PurchaseOrderService
from procurement_suppliers.dispatch import SupplierClients
from procurement_suppliers.types import AsyncOrderAck, OrderLineRequest, SyncVoucher


class Catalog:
    """Suppliers and products created directly in the test session."""

    def __init__(self, session):
        self.session = session
        self.warehouse = self.supplier("Warehouse", None, SupplierType.INTERNAL)
        self.ezcards = self.supplier("EZ Cards", "ez_cards", SupplierType.EXTERNAL)
        self.gift2games = self.supplier("Gift2Games", "gift2games", SupplierType.EXTERNAL)
        self.unknown = self.supplier("Mystery", "mystery_api", SupplierType.EXTERNAL)

        self.steam = self.product(self.warehouse, "STEAM-20", "18.00")
        self.psn = self.product(self.ezcards, "PSN-50", "45.00")
        self.xbox = self.product(self.ezcards, "XBOX-25", "22.50")
        self.itunes = self.product(self.gift2games, "1001", "12.50")
        self.mystery = self.product(self.unknown, "M-1", "1.00")

    def supplier(self, name, slug, supplier_type):
        supplier = Supplier(name=name, slug=slug, supplier_type=supplier_type)
        self.session.add(supplier)
        self.session.flush()
        return supplier.id

    def product(self, supplier_id, sku, cost):
        product = DigitalProduct(
            supplier_id=supplier_id, sku=sku, name=sku, cost_price=Decimal(cost),
        )
        self.session.add(product)
        self.session.flush()
        return product.id


@pytest.fixture
def catalog(session):
    return Catalog(session)


@pytest.fixture
def service(session, supplier_clients, cipher, clock):
    return PurchaseOrderService(session, supplier_clients, cipher, clock)


def _order_count(session) -> int:
    return session.scalar(select(func.count(PurchaseOrder.id)))


def _vouchers(session, order):
    return list(session.scalars(select(Voucher).where(Voucher.purchase_order_id == order.id)))


def _sync_vouchers(*codes):
    return [SyncVoucher(code=c, serial_number=f"SN-{c}") for c in codes]


# =============================================================================
# Validation
# =============================================================================


class TestValidation:

    def test_empty_lines(self, service):
        with pytest.raises(ValidationFailedError) as exc_info:
            service.create_purchase_order([])
        assert exc_info.value.field == "lines"

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True, "2"])
    def test_bad_quantity(self, service, session, catalog, quantity):
        with pytest.raises(ValidationFailedError) as exc_info:
            service.create_purchase_order([OrderLine(catalog.warehouse, catalog.steam, quantity)])
        assert exc_info.value.field == "lines[0].quantity"
        assert _order_count(session) == 0

    def test_missing_supplier_id(self, service, catalog):
        with pytest.raises(ValidationFailedError) as exc_info:
            service.create_purchase_order([OrderLine(None, catalog.steam, 1)])
        assert exc_info.value.field == "lines[0].supplier_id"

    def test_unknown_supplier(self, service, catalog):
        with pytest.raises(SupplierNotConfiguredError):
            service.create_purchase_order([OrderLine(uuid4(), catalog.steam, 1)])

    def test_external_supplier_without_integration(self, service, session, catalog, supplier_clients):
        with pytest.raises(SupplierNotConfiguredError) as exc_info:
            service.create_purchase_order([OrderLine(catalog.unknown, catalog.mystery, 1)])
        assert exc_info.value.code == "SUPPLIER_NOT_CONFIGURED"
        assert _order_count(session) == 0
        supplier_clients.ezcards.place_order.assert_not_called()

    def test_unknown_product(self, service, catalog):
        with pytest.raises(ProductNotFoundError):
            service.create_purchase_order([OrderLine(catalog.warehouse, uuid4(), 1)])

    def test_product_from_other_supplier(self, service, catalog):
        with pytest.raises(ValidationFailedError) as exc_info:
            service.create_purchase_order([OrderLine(catalog.warehouse, catalog.psn, 1)])
        assert exc_info.value.field == "lines[0].product_id"

    def test_duplicate_sku_for_supplier(self, service, catalog):
        with pytest.raises(ValidationFailedError) as exc_info:
            service.create_purchase_order([
                OrderLine(catalog.ezcards, catalog.psn, 1),
                OrderLine(catalog.ezcards, catalog.psn, 2),
            ])
        assert exc_info.value.field == "lines[1].product_id"

    def test_invalid_line_anywhere_blocks_supplier_calls(self, service, session, catalog, supplier_clients):
        with pytest.raises(ValidationFailedError):
            service.create_purchase_order([
                OrderLine(catalog.gift2games, catalog.itunes, 1),
                OrderLine(catalog.ezcards, catalog.psn, 0),
            ])
        supplier_clients.gift2games.place_order.assert_not_called()
        assert _order_count(session) == 0


# =============================================================================
# Internal suppliers
# =============================================================================


class TestInternalSupplier:

    def test_completed_without_sub_orders(self, service, catalog, supplier_clients):
        order = service.create_purchase_order([OrderLine(catalog.warehouse, catalog.steam, 3)])

        assert order.status_enum is PurchaseOrderStatus.COMPLETED
        assert order.sub_orders == []
        assert order.total_price == Decimal("54.00")
        supplier_clients.ezcards.place_order.assert_not_called()
        supplier_clients.gift2games.place_order.assert_not_called()

    def test_item_snapshots(self, service, catalog):
        order = service.create_purchase_order([OrderLine(catalog.warehouse, catalog.steam, 2)])
        item = order.items[0]
        assert item.product_sku == "STEAM-20"
        assert item.unit_cost == Decimal("18.00")
        assert item.subtotal == Decimal("36.00")
        assert item.quantity == 2

    def test_order_number_uses_clock(self, service, catalog):
        order = service.create_purchase_order([OrderLine(catalog.warehouse, catalog.steam, 1)])
        assert order.order_number.startswith("PO-20240101-")
        assert len(order.order_number) == len("PO-20240101-") + 8


# =============================================================================
# Gift2Games (synchronous)
# =============================================================================


class TestSynchronousSupplier:

    def test_full_delivery(self, service, session, cipher, catalog, supplier_clients):
        supplier_clients.gift2games.place_order.side_effect = _sync_vouchers("G-1", "G-2")

        order = service.create_purchase_order([OrderLine(catalog.gift2games, catalog.itunes, 2)])

        assert order.status_enum is PurchaseOrderStatus.COMPLETED
        sub_order = order.sub_orders[0]
        assert sub_order.status_enum is SubOrderStatus.COMPLETED
        assert sub_order.transaction_id is None

        vouchers = _vouchers(session, order)
        assert sorted(cipher.decrypt(v.code) for v in vouchers) == ["G-1", "G-2"]
        assert all(v.status_enum is VoucherStatus.AVAILABLE for v in vouchers)
        assert all(v.purchase_order_item_id == order.items[0].id for v in vouchers)

    def test_one_call_per_unit(self, service, catalog, supplier_clients):
        supplier_clients.gift2games.place_order.side_effect = _sync_vouchers("G-1", "G-2", "G-3")

        order = service.create_purchase_order([OrderLine(catalog.gift2games, catalog.itunes, 3)])

        calls = supplier_clients.gift2games.place_order.call_args_list
        assert len(calls) == 3
        assert [c.args for c in calls] == [
            ("1001", f"{order.order_number}-1"),
            ("1001", f"{order.order_number}-2"),
            ("1001", f"{order.order_number}-3"),
        ]

    def test_partial_delivery_fails_sub_order(self, service, session, catalog, supplier_clients, captured_logs):
        supplier_clients.gift2games.place_order.side_effect = [
            SyncVoucher(code="G-1"),
            SupplierRequestFailedError("gift2games", 200, "Order creation failed: Out of stock"),
        ]

        order = service.create_purchase_order([OrderLine(catalog.gift2games, catalog.itunes, 2)])

        sub_order = order.sub_orders[0]
        assert sub_order.status_enum is SubOrderStatus.FAILED
        assert sub_order.failure_reason.startswith("delivered 1 of 2 units")
        assert "Out of stock" in sub_order.failure_reason
        assert order.status_enum is PurchaseOrderStatus.FAILED
        assert len(_vouchers(session, order)) == 1
        assert any(r["message"] == "supplier_unit_failed" for r in captured_logs())

    def test_no_unit_delivered(self, service, session, catalog, supplier_clients):
        supplier_clients.gift2games.place_order.side_effect = SupplierRequestFailedError(
            "gift2games", 503, "unavailable",
        )

        order = service.create_purchase_order([OrderLine(catalog.gift2games, catalog.itunes, 2)])

        assert order.sub_orders[0].status_enum is SubOrderStatus.FAILED
        assert supplier_clients.gift2games.place_order.call_count == 2
        assert _vouchers(session, order) == []

    def test_codes_never_logged(self, service, catalog, supplier_clients, captured_logs):
        supplier_clients.gift2games.place_order.side_effect = _sync_vouchers("SECRET-CODE-9")
        service.create_purchase_order([OrderLine(catalog.gift2games, catalog.itunes, 1)])
        assert "SECRET-CODE-9" not in str(captured_logs())


# =============================================================================
# EZ Cards (asynchronous)
# =============================================================================


class TestAsynchronousSupplier:

    def test_sub_order_processing_with_transaction(self, service, catalog, supplier_clients):
        supplier_clients.ezcards.place_order.return_value = AsyncOrderAck(
            transaction_id="TX-77", status="PROCESSING",
        )

        order = service.create_purchase_order([OrderLine(catalog.ezcards, catalog.psn, 2)])

        sub_order = order.sub_orders[0]
        assert sub_order.status_enum is SubOrderStatus.PROCESSING
        assert sub_order.transaction_id == "TX-77"
        assert order.status_enum is PurchaseOrderStatus.PROCESSING

    def test_one_call_for_all_lines(self, service, catalog, supplier_clients):
        supplier_clients.ezcards.place_order.return_value = AsyncOrderAck(
            transaction_id="TX-1", status="PROCESSING",
        )

        order = service.create_purchase_order([
            OrderLine(catalog.ezcards, catalog.psn, 2),
            OrderLine(catalog.ezcards, catalog.xbox, 1),
        ])

        supplier_clients.ezcards.place_order.assert_called_once()
        items, order_number = supplier_clients.ezcards.place_order.call_args.args
        assert order_number == order.order_number
        assert sorted(items, key=lambda i: i.sku) == [
            OrderLineRequest(sku="PSN-50", quantity=2),
            OrderLineRequest(sku="XBOX-25", quantity=1),
        ]
        assert len(order.sub_orders) == 1

    def test_rejected_order_fails_sub_order(self, service, catalog, supplier_clients):
        supplier_clients.ezcards.place_order.side_effect = SupplierRequestFailedError(
            "ez_cards", 422, '{"error": "invalid sku"}',
        )

        order = service.create_purchase_order([OrderLine(catalog.ezcards, catalog.psn, 1)])

        sub_order = order.sub_orders[0]
        assert sub_order.status_enum is SubOrderStatus.FAILED
        assert sub_order.transaction_id is None
        assert "invalid sku" in sub_order.failure_reason
        assert order.status_enum is PurchaseOrderStatus.FAILED


# =============================================================================
# Mixed orders
# =============================================================================


class TestMixedOrder:

    def test_total_and_grouping(self, service, catalog, supplier_clients):
        supplier_clients.ezcards.place_order.return_value = AsyncOrderAck(
            transaction_id="TX-1", status="PROCESSING",
        )
        supplier_clients.gift2games.place_order.side_effect = _sync_vouchers("G-1")

        order = service.create_purchase_order([
            OrderLine(catalog.warehouse, catalog.steam, 1),
            OrderLine(catalog.ezcards, catalog.psn, 2),
            OrderLine(catalog.gift2games, catalog.itunes, 1),
        ])

        assert order.total_price == Decimal("18.00") + Decimal("90.00") + Decimal("12.50")
        assert order.total_price == sum(i.subtotal for i in order.items)
        assert len(order.items) == 3
        assert len(order.sub_orders) == 2
        assert order.status_enum is PurchaseOrderStatus.PROCESSING

    def test_one_supplier_failure_does_not_block_others(self, service, catalog, supplier_clients):
        supplier_clients.ezcards.place_order.side_effect = SupplierRequestFailedError(
            "ez_cards", None, "connection refused",
        )
        supplier_clients.gift2games.place_order.side_effect = _sync_vouchers("G-1")

        order = service.create_purchase_order([
            OrderLine(catalog.ezcards, catalog.psn, 1),
            OrderLine(catalog.gift2games, catalog.itunes, 1),
        ])

        statuses = {s.supplier_id: s.status_enum for s in order.sub_orders}
        assert statuses[catalog.ezcards] is SubOrderStatus.FAILED
        assert statuses[catalog.gift2games] is SubOrderStatus.COMPLETED
        assert order.status_enum is PurchaseOrderStatus.FAILED
        supplier_clients.gift2games.place_order.assert_called_once()

    def test_logs_carry_order_context(self, service, catalog, captured_logs):
        order = service.create_purchase_order([OrderLine(catalog.warehouse, catalog.steam, 1)])
        created = [r for r in captured_logs() if r["message"] == "purchase_order_created"]
        assert created[0]["order_number"] == order.order_number
        assert created[0]["supplier_count"] == 1


# =============================================================================
# Malformed supplier replies (real clients, mocked HTTP)
# =============================================================================


@pytest.fixture
def http_service(session, cipher, clock, ezcards_client, gift2games_client):
    clients = SupplierClients(ezcards=ezcards_client, gift2games=gift2games_client)
    return PurchaseOrderService(session, clients, cipher, clock)


def _replies(http_session, make_response, **by_host):
    """Route mocked HTTP calls by host; each host pops its next reply."""
    queues = {host: list(replies) for host, replies in by_host.items()}

    def _request(method, url, **kwargs):
        host = url.split("/")[2].split(".")[0]
        status, payload = queues[host].pop(0)
        return make_response(status, payload)

    http_session.request.side_effect = _request


class TestMalformedSupplierReplies:

    def test_malformed_async_reply_fails_only_that_sub_order(
        self, http_service, session, cipher, catalog, http_session, make_response,
    ):
        _replies(
            http_session, make_response,
            g2g=[(200, {"status": True, "data": {"serialCode": "G-1"}})],
            ezcards=[(200, {"data": {
                "transactionId": 7,
                "products": [{"sku": "PSN-50", "quantity": "two"}],
            }})],
        )

        order = http_service.create_purchase_order([
            OrderLine(catalog.gift2games, catalog.itunes, 1),
            OrderLine(catalog.ezcards, catalog.psn, 2),
        ])

        statuses = {s.supplier_id: s for s in order.sub_orders}
        assert statuses[catalog.ezcards].status_enum is SubOrderStatus.FAILED
        assert "malformed order response" in statuses[catalog.ezcards].failure_reason
        assert statuses[catalog.gift2games].status_enum is SubOrderStatus.COMPLETED
        assert order.status_enum is PurchaseOrderStatus.FAILED
        assert [cipher.decrypt(v.code) for v in _vouchers(session, order)] == ["G-1"]

    def test_malformed_sync_unit_keeps_delivered_units(
        self, http_service, session, cipher, catalog, http_session, make_response,
    ):
        _replies(
            http_session, make_response,
            g2g=[
                (200, {"status": True, "data": {"serialCode": "G-1"}}),
                (200, {"status": True, "data": ["unexpected"]}),
            ],
            ezcards=[(200, {"data": {"transactionId": "TX-1", "status": "PROCESSING"}})],
        )

        order = http_service.create_purchase_order([
            OrderLine(catalog.gift2games, catalog.itunes, 2),
            OrderLine(catalog.ezcards, catalog.psn, 1),
        ])

        statuses = {s.supplier_id: s for s in order.sub_orders}
        sync_sub_order = statuses[catalog.gift2games]
        assert sync_sub_order.status_enum is SubOrderStatus.FAILED
        assert sync_sub_order.failure_reason.startswith("delivered 1 of 2 units")
        assert statuses[catalog.ezcards].status_enum is SubOrderStatus.PROCESSING
        assert statuses[catalog.ezcards].transaction_id == "TX-1"
        assert [cipher.decrypt(v.code) for v in _vouchers(session, order)] == ["G-1"]


# =============================================================================
# Persistence failures
# =============================================================================


class TestPersistenceFailure:

    def test_sqlalchemy_error_translated(self, service, catalog, supplier_clients, monkeypatch):
        supplier_clients.gift2games.place_order.side_effect = _sync_vouchers("G-1")

        def _fail(*args, **kwargs):
            raise OperationalError("INSERT INTO vouchers", {}, Exception("disk I/O error"))

        monkeypatch.setattr(VoucherService, "create_available", _fail)

        with pytest.raises(PersistenceFailedError) as exc_info:
            service.create_purchase_order([OrderLine(catalog.gift2games, catalog.itunes, 1)])
        assert exc_info.value.operation == "create_purchase_order"
