from __future__ import annotations

import logging
import zipfile
from typing import Any, Iterator, List, Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .errors import AppError, FILE_LOCKED, SHEET_NOT_FOUND, SOURCE_READ_FAILED
from .models import AddressRange, CellError, CellValue, RawRow


logger = logging.getLogger("sheet_reader")


def is_blank(value: CellValue) -> bool:
    """
    Single blankness definition: only a cell with no stored value is blank.
    Text is content even when it is empty or whitespace only.
    """
    return value is None


def is_blank_row(row: RawRow) -> bool:
    """True when the row has no cells or every cell is blank."""
    return all(is_blank(value) for _, value in row.cells)


def cell_value(cell: Any) -> CellValue:
    """Map an openpyxl cell to a CellValue, tagging stored error values."""
    value = cell.value
    if value is not None and getattr(cell, "data_type", None) == "e":
        return CellError(str(value))
    return value


def is_stored(cell: Any) -> bool:
    """
    True for a cell the file actually holds: one with a value or a style.
    Padding cells handed out for missing positions have neither.
    """
    return cell.value is not None or bool(getattr(cell, "has_style", False))


class XlsxSource:
    """
    Row source over one .xlsx workbook.

    streaming=True opens the workbook read-only, so rows are parsed as they
    are pulled instead of loading the whole sheet up front.
    """

    def __init__(self, path: str, streaming: bool = False):
        self.path = path
        self.streaming = streaming

    def _load(self):
        try:
            return load_workbook(self.path, read_only=self.streaming, data_only=True)
        except PermissionError:
            raise AppError(
                FILE_LOCKED,
                f"Source file is locked: {self.path}",
                {"path": self.path},
            )
        except FileNotFoundError as e:
            raise AppError(SOURCE_READ_FAILED, f"Source file not found: {e}", {"path": self.path})
        except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as e:
            raise AppError(SOURCE_READ_FAILED, f"Failed to read source: {e}", {"path": self.path})

    def sheet_names(self) -> List[str]:
        wb = self._load()
        try:
            return list(wb.sheetnames)
        finally:
            wb.close()

    def open_sheet(
        self,
        sheet_name: str,
        address_range: Optional[AddressRange] = None,
    ) -> Iterator[RawRow]:
        """
        Open one sheet and return its rows lazily, bounded by address_range.

        Raises SHEET_NOT_FOUND immediately; no row is read before the check.
        Rows without a single stored cell are skipped as absent. A row whose
        stored cells are all empty is still yielded, and classifies as blank.
        """
        wb = self._load()
        if sheet_name not in wb.sheetnames:
            wb.close()
            raise AppError(
                SHEET_NOT_FOUND,
                f"Sheet not found: {sheet_name}",
                {"sheet": sheet_name, "path": self.path},
            )
        logger.debug("Opened sheet %r in %s (streaming=%s)", sheet_name, self.path, self.streaming)
        return self._iter_rows(wb, wb[sheet_name], address_range)

    def _iter_rows(self, wb, ws, address_range: Optional[AddressRange]) -> Iterator[RawRow]:
        min_row = address_range.first_row if address_range else 1
        min_col = address_range.first_column if address_range else 1
        max_row = address_range.last_row if address_range else None
        max_col = address_range.last_column if address_range else None
        try:
            rows = ws.iter_rows(
                min_row=min_row,
                max_row=max_row,
                min_col=min_col,
                max_col=max_col,
            )
            for offset, row in enumerate(rows):
                if not any(is_stored(cell) for cell in row):
                    continue
                cells = tuple(
                    (min_col + c, cell_value(cell)) for c, cell in enumerate(row)
                )
                yield RawRow(index=min_row + offset, cells=cells)
        finally:
            wb.close()
