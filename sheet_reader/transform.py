from __future__ import annotations

from typing import List, Optional

from .models import AddressRange, CellValue, OutputRow, RawRow


def row_shape_width(row: RawRow, address_range: AddressRange) -> int:
    """
    Number of output slots needed to hold every in-range cell of the row,
    counted from the range's first column.
    """
    width = 0
    for col, _ in row.cells:
        if address_range.contains_column(col):
            width = max(width, col - address_range.first_column + 1)
    return width


def project_values(row: RawRow, address_range: AddressRange, width: int) -> List[CellValue]:
    """
    Place each in-range cell at slot (column - first_column).
    Slots without a cell stay None; cells beyond width are ignored.
    """
    values: List[CellValue] = [None] * width
    for col, value in row.cells:
        if not address_range.contains_column(col):
            continue
        slot = col - address_range.first_column
        if slot < width:
            values[slot] = value
    return values


class RowProjector:
    """
    Maps raw rows onto fixed-width output rows for one read operation.

    The width comes from the range when its columns are bounded, otherwise
    from an explicit width, otherwise from the first row passed to fix_width().
    Once fixed, the width never changes.
    """

    def __init__(self, address_range: AddressRange, width: Optional[int] = None):
        self.address_range = address_range
        bounded = address_range.column_count()
        self._width: Optional[int] = width if width is not None else bounded

    @property
    def width(self) -> Optional[int]:
        return self._width

    @property
    def is_fixed(self) -> bool:
        return self._width is not None

    def fix_width(self, row: Optional[RawRow] = None, fallback: int = 0) -> int:
        if self._width is None:
            self._width = row_shape_width(row, self.address_range) if row is not None else fallback
        return self._width

    def project(self, row: RawRow) -> OutputRow:
        width = self.fix_width(row)
        values = project_values(row, self.address_range, width)
        return OutputRow(source_index=row.index, values=tuple(values))

    def null_row(self, index: int) -> OutputRow:
        width = self.fix_width()
        return OutputRow(source_index=index, values=(None,) * width, synthetic=True)
