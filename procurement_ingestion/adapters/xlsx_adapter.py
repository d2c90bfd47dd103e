"""
XLSX voucher code adapter.

Reads the active sheet with openpyxl in read-only mode.  Row 1 holds the
headings; numeric cells are normalized so that a code typed as 12345 is read
as "12345", not "12345.0".
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

import openpyxl

from procurement_ingestion.adapters.base import CodeRow, find_code_column


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


class XlsxCodeAdapter:
    """Read the ``code`` column of the active worksheet."""

    def read(self, source_path: Path, source_name: str | None = None) -> Iterator[CodeRow]:
        wb = openpyxl.load_workbook(source_path, read_only=True, data_only=True)
        try:
            sheet = wb.active
            rows = sheet.iter_rows(values_only=True)
            headers = next(rows, None)
            if headers is None:
                return
            code_idx = find_code_column(list(headers), source_name)

            for row_number, row in enumerate(rows, start=2):
                values = [_cell_value(v) for v in row]
                if not any(str(v).strip() for v in values):
                    continue
                value = values[code_idx] if code_idx < len(values) else ""
                yield CodeRow(value=value, row=row_number, source=source_name)
        finally:
            wb.close()
