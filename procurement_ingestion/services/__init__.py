"""Ingestion services."""

from procurement_ingestion.services.voucher_import_service import (
    ImportResult,
    VoucherImportService,
)

__all__ = ["VoucherImportService", "ImportResult"]
