"""
Voucher code source adapter protocol and row DTO.

Contract:
    CodeSourceAdapter.read() yields one CodeRow per data row of a file.
    Blank rows (every cell empty) are skipped; a row with other cells but
    an empty code is yielded so validation can name it.

Architecture: procurement_ingestion/adapters.  File I/O only, no DB access.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable

from procurement_kernel.exceptions import ValidationFailedError

CODE_COLUMN = "code"


@dataclass(frozen=True)
class CodeRow:
    """
    One candidate voucher code and where it came from.

    ``row`` is the 1-based row number in the sheet (header is row 1), or the
    1-based position for explicit code lists.  ``source`` names the zip entry
    when the row came from inside an archive.
    """

    value: Any
    row: int
    source: str | None = None

    @property
    def location(self) -> int | str:
        if self.source is None:
            return self.row
        return f"{self.source} row {self.row}"


@runtime_checkable
class CodeSourceAdapter(Protocol):
    """Protocol for reading voucher code files into CodeRows."""

    def read(self, source_path: Path, source_name: str | None = None) -> Iterator[CodeRow]:
        ...


def find_code_column(headers: list[Any], source: str | None) -> int:
    """Return the index of the ``code`` heading (case-insensitive)."""
    for idx, header in enumerate(headers):
        if header is not None and str(header).strip().lower() == CODE_COLUMN:
            return idx
    where = f"{source}: " if source else ""
    raise ValidationFailedError(
        f"{where}heading row must contain a '{CODE_COLUMN}' column",
        field=CODE_COLUMN,
    )
