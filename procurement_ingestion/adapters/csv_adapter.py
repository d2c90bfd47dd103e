"""
CSV voucher code adapter.

Uses csv.reader with the first row as headings.  Handles a UTF-8 BOM via
utf-8-sig.  Streams rows.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterator

from procurement_ingestion.adapters.base import CodeRow, find_code_column


class CsvCodeAdapter:
    """Read the ``code`` column of a CSV file."""

    def __init__(self, encoding: str = "utf-8", delimiter: str = ","):
        self._encoding = "utf-8-sig" if encoding.lower() == "utf-8" else encoding
        self._delimiter = delimiter

    def read(self, source_path: Path, source_name: str | None = None) -> Iterator[CodeRow]:
        with source_path.open("r", encoding=self._encoding, newline="") as f:
            reader = csv.reader(f, delimiter=self._delimiter)
            headers = next(reader, None)
            if headers is None:
                return
            code_idx = find_code_column(headers, source_name)

            for row_number, row in enumerate(reader, start=2):
                if not any(cell.strip() for cell in row):
                    continue
                value = row[code_idx] if code_idx < len(row) else ""
                yield CodeRow(value=value, row=row_number, source=source_name)
