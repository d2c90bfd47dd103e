"""Tests for VoucherAuditService -- audited reveal of voucher codes."""

from uuid import uuid4

import pytest
from sqlalchemy import select

from procurement_kernel.exceptions import ValidationFailedError, VoucherNotFoundError
from procurement_kernel.models import Voucher, VoucherAuditAction, VoucherAuditLog, VoucherStatus
from procurement_kernel.services.voucher_audit_service import VoucherAuditService
from procurement_kernel.services.voucher_service import VoucherService

ACTOR_ID = uuid4()


@pytest.fixture
def service(session, cipher):
    return VoucherAuditService(session, cipher)


@pytest.fixture
def voucher(session, cipher, placed_order):
    return VoucherService(session, cipher).create_available(
        placed_order.order, placed_order.item, "CODE-1", serial_number="SN-1", pin_code="1234",
    )


def _audit_rows(session):
    return list(session.scalars(select(VoucherAuditLog)))


class TestReveal:

    def test_returns_plaintext(self, service, voucher):
        revealed = service.reveal(voucher.id, ACTOR_ID)
        assert revealed.code == "CODE-1"
        assert revealed.pin_code == "1234"
        assert revealed.serial_number == "SN-1"
        assert revealed.status == "available"

    def test_appends_audit_row(self, service, session, voucher):
        service.reveal(voucher.id, ACTOR_ID, ip_address="10.0.0.1", user_agent="pytest")
        rows = _audit_rows(session)
        assert len(rows) == 1
        assert rows[0].actor_id == ACTOR_ID
        assert rows[0].action == VoucherAuditAction.VIEWED.value
        assert rows[0].ip_address == "10.0.0.1"

    def test_legacy_plaintext_shown_as_stored(self, service, session, placed_order):
        legacy = Voucher(
            purchase_order=placed_order.order,
            code="LEGACY-PLAIN",
            status=VoucherStatus.AVAILABLE,
        )
        session.add(legacy)
        session.flush()
        assert service.reveal(legacy.id, ACTOR_ID).code == "LEGACY-PLAIN"

    def test_placeholder_has_no_code(self, service, session, cipher, placed_order):
        VoucherService(session, cipher).ensure_placeholder(
            placed_order.order, placed_order.item, "S-1",
        )
        placeholder = session.scalars(select(Voucher)).one()
        revealed = service.reveal(placeholder.id, ACTOR_ID)
        assert revealed.code is None
        assert revealed.status == "processing"

    def test_unknown_voucher(self, service):
        with pytest.raises(VoucherNotFoundError):
            service.reveal(uuid4(), ACTOR_ID)


class TestRecord:

    def test_copy_event(self, service, session, voucher):
        service.record(voucher.id, ACTOR_ID, VoucherAuditAction.COPIED)
        assert _audit_rows(session)[0].action == "copied"

    def test_accepts_action_string(self, service, session, voucher):
        service.record(voucher.id, ACTOR_ID, "requested")
        assert _audit_rows(session)[0].action == "requested"

    def test_ip_address_too_long(self, service, session, voucher):
        with pytest.raises(ValidationFailedError) as exc_info:
            service.record(voucher.id, ACTOR_ID, VoucherAuditAction.VIEWED, ip_address="x" * 46)
        assert exc_info.value.field == "ip_address"
        assert _audit_rows(session) == []

    def test_logs_without_code(self, service, voucher, captured_logs):
        service.reveal(voucher.id, ACTOR_ID)
        records = [r for r in captured_logs() if r["message"] == "voucher_audit_recorded"]
        assert records[0]["action"] == "viewed"
        assert "CODE-1" not in str(captured_logs())
