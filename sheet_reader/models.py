from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .errors import AppError, MALFORMED_ADDRESS
from .parsing import format_cell_ref, parse_cell_ref, quote_sheet_name, split_sheet_address


# ---- Cell values ----

@dataclass(frozen=True)
class CellError:
    """
    Stored spreadsheet error value such as '#DIV/0!' or '#N/A'.
    """
    code: str

    def __str__(self) -> str:
        return self.code


CellValue = Any
"""None (blank), str, int/float/Decimal, bool, date/time or CellError."""


# ---- Rows ----

@dataclass(frozen=True)
class RawRow:
    """
    A row as produced by a row source: 1-based sheet row index plus
    (1-based column, value) pairs. Columns are unique within a row.
    """
    index: int
    cells: Tuple[Tuple[int, CellValue], ...] = ()


@dataclass(frozen=True)
class OutputRow:
    """
    One reconciled record. synthetic=True marks an all-null row standing in
    for an absent or blank source row.
    """
    source_index: int
    values: Tuple[CellValue, ...]
    synthetic: bool = False


# ---- Address range ----

@dataclass(frozen=True)
class AddressRange:
    """
    Rectangular sheet region, 1-based and inclusive. None means unbounded.
    """
    sheet_name: str
    first_row: int = 1
    last_row: Optional[int] = None
    first_column: int = 1
    last_column: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.sheet_name:
            raise AppError(MALFORMED_ADDRESS, "Sheet name is required")
        if self.first_row < 1 or self.first_column < 1:
            raise AppError(MALFORMED_ADDRESS, "Row and column positions start at 1")
        if self.last_row is not None and self.last_row < self.first_row:
            raise AppError(
                MALFORMED_ADDRESS,
                f"First row {self.first_row} lies after last row {self.last_row}",
            )
        if self.last_column is not None and self.last_column < self.first_column:
            raise AppError(
                MALFORMED_ADDRESS,
                f"First column {self.first_column} lies after last column {self.last_column}",
            )

    @classmethod
    def parse(cls, address: str) -> "AddressRange":
        """
        Parse "'Sheet'!A1" (anchor, unbounded right and down) or
        "'Sheet'!A1:C10" (bounded rectangle).
        """
        sheet_name, cells = split_sheet_address(address)
        first, sep, last = cells.partition(":")
        first_row, first_col = parse_cell_ref(first)
        if not sep:
            return cls(sheet_name, first_row, None, first_col, None)
        last_row, last_col = parse_cell_ref(last)
        if first_row > last_row or first_col > last_col:
            raise AppError(
                MALFORMED_ADDRESS,
                f"First cell lies after last cell in {address!r}",
                {"address": address},
            )
        return cls(sheet_name, first_row, last_row, first_col, last_col)

    def contains(self, row: int, column: int) -> bool:
        return self.contains_row(row) and self.contains_column(column)

    def contains_row(self, row: int) -> bool:
        if row < self.first_row:
            return False
        return self.last_row is None or row <= self.last_row

    def contains_column(self, column: int) -> bool:
        if column < self.first_column:
            return False
        return self.last_column is None or column <= self.last_column

    def column_count(self) -> Optional[int]:
        if self.last_column is None:
            return None
        return self.last_column - self.first_column + 1

    def row_count(self) -> Optional[int]:
        if self.last_row is None:
            return None
        return self.last_row - self.first_row + 1

    def to_address(self) -> str:
        anchor = format_cell_ref(self.first_row, self.first_column)
        if self.last_row is None or self.last_column is None:
            return f"{quote_sheet_name(self.sheet_name)}!{anchor}"
        end = format_cell_ref(self.last_row, self.last_column)
        return f"{quote_sheet_name(self.sheet_name)}!{anchor}:{end}"


# ---- Read policy ----

@dataclass(frozen=True)
class ReconciliationPolicy:
    keep_undefined_rows: bool = False
    has_header: bool = False


@dataclass
class ReadStats:
    """
    Counters for one traversal. rows_dropped counts blank rows compacted away.
    """
    rows_emitted: int = 0
    synthetic_rows: int = 0
    rows_dropped: int = 0
