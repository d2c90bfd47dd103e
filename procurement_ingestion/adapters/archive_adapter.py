"""
Zip archive adapter and spreadsheet adapter selection.

A zip is expanded entry by entry into a temporary directory.  Directories,
macOS resource forks and entries that are not supported spreadsheets are
skipped.  Each yielded row carries its entry name so errors read
``codes.csv row 4``.
"""

from __future__ import annotations

import tempfile
import zipfile
from pathlib import Path, PurePosixPath
from typing import Iterator

from procurement_ingestion.adapters.base import CodeRow, CodeSourceAdapter
from procurement_ingestion.adapters.csv_adapter import CsvCodeAdapter
from procurement_ingestion.adapters.xlsx_adapter import XlsxCodeAdapter
from procurement_kernel.exceptions import ValidationFailedError
from procurement_kernel.logging_config import get_logger

logger = get_logger("ingestion.archive")

SPREADSHEET_EXTENSIONS = frozenset({".csv", ".xlsx", ".xlsm"})
ARCHIVE_EXTENSIONS = frozenset({".zip"})
SUPPORTED_EXTENSIONS = SPREADSHEET_EXTENSIONS | ARCHIVE_EXTENSIONS


def spreadsheet_adapter_for(name: str) -> CodeSourceAdapter | None:
    """Adapter for a spreadsheet file name, or None if unsupported."""
    suffix = PurePosixPath(name).suffix.lower()
    if suffix == ".csv":
        return CsvCodeAdapter()
    if suffix in (".xlsx", ".xlsm"):
        return XlsxCodeAdapter()
    return None


def _is_skipped_entry(info: zipfile.ZipInfo) -> bool:
    path = PurePosixPath(info.filename)
    if info.is_dir():
        return True
    if path.parts and path.parts[0] == "__MACOSX":
        return True
    return path.name.startswith("._")


class ZipArchiveAdapter:
    """Read every supported spreadsheet inside a zip archive."""

    def __init__(self) -> None:
        self.sources: list[str] = []

    def read(self, source_path: Path, source_name: str | None = None) -> Iterator[CodeRow]:
        self.sources = []
        try:
            archive = zipfile.ZipFile(source_path)
        except zipfile.BadZipFile:
            raise ValidationFailedError("file is not a valid zip archive", field="file")

        with archive, tempfile.TemporaryDirectory(prefix="voucher-import-") as tmp:
            for index, info in enumerate(archive.infolist()):
                if _is_skipped_entry(info):
                    continue
                entry_name = PurePosixPath(info.filename).name
                adapter = spreadsheet_adapter_for(entry_name)
                if adapter is None:
                    logger.info(
                        "voucher_import_entry_skipped",
                        extra={"entry": info.filename},
                    )
                    continue

                # Entry names are flattened; the index keeps same-named files apart
                target = Path(tmp) / f"{index}_{entry_name}"
                with archive.open(info) as src, target.open("wb") as dst:
                    dst.write(src.read())

                self.sources.append(info.filename)
                yield from adapter.read(target, source_name=info.filename)

        if not self.sources:
            raise ValidationFailedError(
                "archive contains no supported spreadsheet files", field="file",
            )
