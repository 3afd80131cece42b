from __future__ import annotations

from typing import List, Optional, Sequence

from .io import is_blank
from .models import AddressRange, RawRow
from .transform import project_values, row_shape_width


def positional_name(slot: int) -> str:
    """Fallback column name: the 1-based offset within the range."""
    return str(slot + 1)


def extract_names(
    row: RawRow,
    address_range: AddressRange,
    width: Optional[int] = None,
) -> List[str]:
    """
    Column names from a header row. Present cells give their text, blank
    slots give their positional name. Duplicates are left as they are.
    """
    if width is None:
        width = address_range.column_count()
    if width is None:
        width = row_shape_width(row, address_range)
    values = project_values(row, address_range, width)
    return [
        positional_name(i) if is_blank(v) else str(v)
        for i, v in enumerate(values)
    ]


def unique_names(names: Sequence[str]) -> List[str]:
    """
    Names with every repeat of an earlier name suffixed by its 1-based
    position, e.g. ["x", "x"] -> ["x", "x_2"]. Used where names become keys.
    """
    seen = set()
    unique: List[str] = []
    for slot, name in enumerate(names):
        while name in seen:
            name = f"{name}_{slot + 1}"
        seen.add(name)
        unique.append(name)
    return unique


def fit_names(names: Sequence[str], width: int) -> List[str]:
    """Truncate names to width, or pad them with positional names."""
    fitted = list(names[:width])
    for i in range(len(fitted), width):
        fitted.append(positional_name(i))
    return fitted
