"""
Typed Exception Hierarchy for the Procurement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the procurement core (HTTP controllers, the reconciliation
command, operator tooling) must react to failures precisely: a duplicate
voucher code in an import is shown to the operator, a supplier outage is
retried on the next scheduler tick, a bad encryption key stops the process.
Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ProcurementError:

    ProcurementError (base)
    |
    +-- ValidationFailedError
    |   +-- ImportCountMismatchError
    |
    +-- ReferenceDataError
    |   +-- SupplierNotConfiguredError
    |   +-- ProductNotFoundError
    |   +-- PurchaseOrderNotFoundError
    |   +-- VoucherNotFoundError
    |
    +-- SupplierRequestFailedError
    |
    +-- CipherError
    |   +-- DecryptionFailedError
    |   +-- InvalidKeyError
    |
    +-- PersistenceFailedError
    |
    +-- InvalidStatusTransitionError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_FAILED           | Bad input shape/values, before side effects
                | IMPORT_COUNT_MISMATCH       | Imported codes != ordered quantity
----------------|-----------------------------|-----------------------------------------
Reference data  | SUPPLIER_NOT_CONFIGURED     | Unknown supplier id or unknown slug
                | PRODUCT_NOT_FOUND           | Product id doesn't exist
                | PURCHASE_ORDER_NOT_FOUND    | Purchase order id doesn't exist
                | VOUCHER_NOT_FOUND           | Voucher id doesn't exist
----------------|-----------------------------|-----------------------------------------
Supplier        | SUPPLIER_REQUEST_FAILED     | Network/4xx/5xx after retries exhausted
----------------|-----------------------------|-----------------------------------------
Cipher          | DECRYPTION_FAILED           | Corrupt/tampered ciphertext or wrong key
                | INVALID_KEY                 | Encryption key is not 32 bytes (fatal)
----------------|-----------------------------|-----------------------------------------
Persistence     | PERSISTENCE_FAILED          | Database failure inside a transaction
----------------|-----------------------------|-----------------------------------------
State machine   | INVALID_STATUS_TRANSITION   | Sub-order / voucher transition not allowed
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | Missing or malformed settings

===============================================================================
HANDLING PATTERNS
===============================================================================

1. PER-SUPPLIER FAILURES ARE RECORDED, NOT RAISED:

    try:
        ack = clients.ezcards.place_order(items, order_number)
    except SupplierRequestFailedError as e:
        sub_order.mark_failed(reason=str(e))

2. RECONCILIATION FAILURES ARE AGGREGATED:

    except Exception as e:
        summary.errors.append(ReconciliationError(order_id, number, str(e)))

3. DISPLAY PATHS PREFER safe_decrypt():

    code = cipher.safe_decrypt(voucher.code)  # None instead of raising
"""


class ProcurementError(Exception):
    """
    Base exception for all procurement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PROCUREMENT_ERROR"


# Validation exceptions


class ValidationFailedError(ProcurementError):
    """Input rejected before any side effect took place."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, reason: str, field: str | None = None, row: int | str | None = None):
        self.reason = reason
        self.field = field
        self.row = row
        prefix = f"{row}: " if isinstance(row, str) else (f"row {row}: " if row is not None else "")
        super().__init__(f"{prefix}{reason}")


class ImportCountMismatchError(ValidationFailedError):
    """Number of submitted voucher codes differs from the ordered quantity."""

    code: str = "IMPORT_COUNT_MISMATCH"

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(
            f"The number of voucher codes ({received}) does not match the total "
            f"quantity of the purchase order ({expected})",
            field="codes",
        )


# Reference data exceptions


class ReferenceDataError(ProcurementError):
    """Base exception for missing or misconfigured reference data."""

    code: str = "REFERENCE_DATA_ERROR"


class SupplierNotConfiguredError(ReferenceDataError):
    """Supplier does not exist, or is external with no known integration."""

    code: str = "SUPPLIER_NOT_CONFIGURED"

    def __init__(self, supplier: str, reason: str = "unknown supplier"):
        self.supplier = supplier
        self.reason = reason
        super().__init__(f"Supplier {supplier} is not configured: {reason}")


class ProductNotFoundError(ReferenceDataError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class PurchaseOrderNotFoundError(ReferenceDataError):
    """Purchase order with given ID was not found."""

    code: str = "PURCHASE_ORDER_NOT_FOUND"

    def __init__(self, purchase_order_id: str):
        self.purchase_order_id = purchase_order_id
        super().__init__(f"Purchase order not found: {purchase_order_id}")


class VoucherNotFoundError(ReferenceDataError):
    """Voucher with given ID was not found."""

    code: str = "VOUCHER_NOT_FOUND"

    def __init__(self, voucher_id: str):
        self.voucher_id = voucher_id
        super().__init__(f"Voucher not found: {voucher_id}")


# Supplier exceptions


class SupplierRequestFailedError(ProcurementError):
    """
    Supplier API call failed terminally.

    status_code is None when the supplier could not be reached at all.
    """

    code: str = "SUPPLIER_REQUEST_FAILED"

    def __init__(self, supplier: str, status_code: int | None, body: str):
        self.supplier = supplier
        self.status_code = status_code
        self.body = body
        status = status_code if status_code is not None else "no response"
        super().__init__(f"{supplier} API request failed ({status}): {body}")

    @property
    def is_client_error(self) -> bool:
        """True for 4xx responses, which will never succeed unmodified."""
        return self.status_code is not None and 400 <= self.status_code < 500

    @property
    def is_retryable(self) -> bool:
        """True for 5xx responses and connectivity failures."""
        return self.status_code is None or self.status_code >= 500


# Cipher exceptions


class CipherError(ProcurementError):
    """Base exception for voucher encryption errors."""

    code: str = "CIPHER_ERROR"


class DecryptionFailedError(CipherError):
    """Ciphertext is malformed, tampered with, or encrypted under another key."""

    code: str = "DECRYPTION_FAILED"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Decryption failed: {reason}")


class InvalidKeyError(CipherError):
    """Voucher encryption key is not exactly 32 bytes."""

    code: str = "INVALID_KEY"

    def __init__(self, key_length: int):
        self.key_length = key_length
        super().__init__(
            f"VOUCHER_ENCRYPTION_KEY must be 32 bytes (got {key_length}); "
            "generate one with: openssl rand -base64 32"
        )


# Persistence exceptions


class PersistenceFailedError(ProcurementError):
    """Database-layer failure; the enclosing transaction is rolled back."""

    code: str = "PERSISTENCE_FAILED"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Persistence failed during {operation}: {reason}")


# State machine exceptions


class InvalidStatusTransitionError(ProcurementError):
    """Requested status change is not in the entity's transition table."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, entity: str, entity_id: str, from_status: str, to_status: str):
        self.entity = entity
        self.entity_id = entity_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid {entity} transition for {entity_id}: {from_status} -> {to_status}"
        )


# Configuration exceptions


class ConfigurationError(ProcurementError):
    """Settings are missing or malformed."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid configuration for {setting}: {reason}")
