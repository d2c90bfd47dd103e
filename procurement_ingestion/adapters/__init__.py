"""Voucher code source adapters (file I/O only, no DB)."""

from procurement_ingestion.adapters.archive_adapter import (
    SUPPORTED_EXTENSIONS,
    ZipArchiveAdapter,
    spreadsheet_adapter_for,
)
from procurement_ingestion.adapters.base import CodeRow, CodeSourceAdapter
from procurement_ingestion.adapters.csv_adapter import CsvCodeAdapter
from procurement_ingestion.adapters.xlsx_adapter import XlsxCodeAdapter

__all__ = [
    "CodeRow",
    "CodeSourceAdapter",
    "CsvCodeAdapter",
    "XlsxCodeAdapter",
    "ZipArchiveAdapter",
    "SUPPORTED_EXTENSIONS",
    "spreadsheet_adapter_for",
]
