"""Purchase order number generation."""

import secrets

from procurement_kernel.domain.clock import Clock

ORDER_NUMBER_PREFIX = "PO"


def generate_order_number(clock: Clock, token: str | None = None) -> str:
    """
    Build a human-readable order number: ``PO-YYYYMMDD-XXXXXXXX``.

    The date is the UTC date from ``clock``; the suffix is 8 uppercase hex
    characters (``token`` overrides it in tests).  Uniqueness is finally
    enforced by the database constraint on order_number.
    """
    suffix = token if token is not None else secrets.token_hex(4).upper()
    return f"{ORDER_NUMBER_PREFIX}-{clock.now():%Y%m%d}-{suffix}"
