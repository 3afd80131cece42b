"""
sheet_reader/reader.py — Read entry points.

Responsible for:
  - Parsing the data address (fails before any row is read)
  - Opening the sheet on a row source (fails immediately if it is missing)
  - Limiting the source's rows to the address range
  - Handing the rows to a RowReconciler, which is returned unstarted

Rows are only read when the caller iterates the returned reconciler.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Optional, Protocol, Tuple

from .config import ReadOptions
from .errors import AppError, BAD_OPTION
from .io import XlsxSource
from .models import AddressRange, RawRow
from .reconcile import RowReconciler, ordering_violation


logger = logging.getLogger("sheet_reader")


class RowSource(Protocol):
    def open_sheet(
        self, sheet_name: str, address_range: Optional[AddressRange] = None
    ) -> Iterable[RawRow]:
        ...


def filter_rows(rows: Iterable[RawRow], address_range: AddressRange) -> Iterator[RawRow]:
    """
    Drop rows above the range and stop at the first row below it.
    Column filtering is left to the projector. Row order is checked on every
    row the source yields, including the skipped ones.
    """
    previous = None
    for row in rows:
        if previous is not None and row.index <= previous:
            raise ordering_violation(row.index, previous)
        previous = row.index
        if row.index < address_range.first_row:
            continue
        if address_range.last_row is not None and row.index > address_range.last_row:
            break
        yield row


def read(
    source: RowSource,
    address: str,
    options: Optional[ReadOptions] = None,
) -> RowReconciler:
    """
    Start one read operation over source. Returns a lazy, non-restartable
    iterator of OutputRow; call read() again to start over.
    """
    options = options or ReadOptions()
    address_range = AddressRange.parse(address)
    rows = source.open_sheet(address_range.sheet_name, address_range)
    logger.info(
        "Reading %s (header=%s, keep_undefined_rows=%s)",
        address_range.to_address(),
        options.header,
        options.keep_undefined_rows,
    )
    return RowReconciler(
        filter_rows(rows, address_range),
        address_range,
        options.policy,
        schema=options.schema,
        width_from=options.width_from,
    )


def read_xlsx(
    path: str,
    address: Optional[str] = None,
    options: Optional[ReadOptions] = None,
) -> RowReconciler:
    """
    read() over an .xlsx file. address falls back to options.data_address.
    """
    options = options or ReadOptions()
    address = address or options.data_address
    if not address:
        raise AppError(BAD_OPTION, "A data address is required", {"option": "data_address"})
    return read(XlsxSource(path, streaming=options.streaming), address, options)


def iter_records(
    rows: RowReconciler,
    row_number_column: Optional[str] = None,
) -> Iterator[Tuple[Any, ...]]:
    """
    Plain value tuples for each output row. With row_number_column set, the
    source row index is appended as the last value.
    """
    for row in rows:
        if row_number_column:
            yield row.values + (row.source_index,)
        else:
            yield row.values


def record_columns(rows: RowReconciler, row_number_column: Optional[str] = None):
    columns = rows.columns
    if row_number_column:
        columns.append(row_number_column)
    return columns
