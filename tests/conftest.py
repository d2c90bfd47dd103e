"""
Pytest fixtures for the procurement test suite.

Provides:
- In-memory SQLite engine with every table, one per test
- Session and session factory bound to it
- Deterministic clock, random-key cipher
- Catalogue factories (suppliers, products)
- Fake HTTP sessions for the supplier clients
- captured_logs for asserting on structured log events
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import procurement_kernel.models  # noqa: F401  (registers tables)
from procurement_kernel.db.base import Base
from procurement_kernel.db.engine import session_scope
from procurement_kernel.domain.clock import DeterministicClock
from procurement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from procurement_kernel.models.supplier import DigitalProduct, Supplier, SupplierType
from procurement_kernel.services.voucher_cipher import VoucherCipher
from procurement_suppliers.dispatch import SupplierClients
from procurement_suppliers.ezcards import EzCardsClient
from procurement_suppliers.gift2games import Gift2GamesClient


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture procurement logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "purchase_order_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("procurement")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory) -> Session:
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def cipher() -> VoucherCipher:
    return VoucherCipher(os.urandom(32))


@pytest.fixture
def make_supplier(session_factory):
    """Factory: commit a supplier and return its id."""

    def _make(
        name: str = "Internal Stock",
        slug: str | None = None,
        external: bool = False,
    ):
        with session_scope(session_factory) as sess:
            supplier = Supplier(
                name=name,
                slug=slug,
                supplier_type=SupplierType.EXTERNAL if external else SupplierType.INTERNAL,
            )
            sess.add(supplier)
            sess.flush()
            return supplier.id

    return _make


@pytest.fixture
def make_product(session_factory):
    """Factory: commit a product for a supplier and return its id."""

    def _make(supplier_id, sku: str, cost: str = "10.00", name: str | None = None):
        with session_scope(session_factory) as sess:
            product = DigitalProduct(
                supplier_id=supplier_id,
                sku=sku,
                name=name or f"Product {sku}",
                cost_price=Decimal(cost),
            )
            sess.add(product)
            sess.flush()
            return product.id

    return _make


@pytest.fixture
def ezcards_supplier(make_supplier):
    return make_supplier(name="EZ Cards", slug="ez_cards", external=True)


@pytest.fixture
def gift2games_supplier(make_supplier):
    return make_supplier(name="Gift2Games", slug="gift2games", external=True)


@pytest.fixture
def internal_supplier(make_supplier):
    return make_supplier(name="Warehouse")


# =============================================================================
# HTTP fixtures
# =============================================================================


def _response(status_code: int = 200, payload: Any = None, text: str | None = None):
    """A requests.Response double with status_code, text and json()."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    if payload is not None:
        response.json.return_value = payload
        response.text = text if text is not None else json.dumps(payload)
    else:
        response.json.side_effect = ValueError("No JSON object could be decoded")
        response.text = text if text is not None else ""
    return response


@pytest.fixture
def make_response():
    return _response


@pytest.fixture
def http_session():
    """A requests.Session double; set ``.request.side_effect`` per test."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def ezcards_client(http_session) -> EzCardsClient:
    return EzCardsClient(
        base_url="https://ezcards.test",
        access_token="ez-token",
        api_key="ez-key",
        retry_attempts=3,
        retry_delay_seconds=0.0,
        session=http_session,
    )


@pytest.fixture
def gift2games_client(http_session) -> Gift2GamesClient:
    return Gift2GamesClient(
        base_url="https://g2g.test/api/",
        access_token="g2g-token",
        retry_attempts=3,
        session=http_session,
    )


@pytest.fixture
def supplier_clients() -> SupplierClients:
    """Supplier clients whose order methods are mocks."""
    ezcards = MagicMock(spec=EzCardsClient)
    gift2games = MagicMock(spec=Gift2GamesClient)
    return SupplierClients(ezcards=ezcards, gift2games=gift2games)
