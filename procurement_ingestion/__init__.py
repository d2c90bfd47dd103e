"""Voucher code import: file adapters and the batch import service."""

from procurement_ingestion.services import ImportResult, VoucherImportService

__all__ = ["VoucherImportService", "ImportResult"]
