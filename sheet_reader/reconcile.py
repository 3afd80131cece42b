"""
sheet_reader/reconcile.py — Sparse-row reconciliation.

Turns a strictly index-increasing stream of raw rows into the final output
row sequence for one address range:

  keep_undefined_rows=False: only non-blank rows, compacted together.
  keep_undefined_rows=True:  one row per position from first_row onwards;
                              absent and blank positions become all-null rows,
                              trailing positions are filled up to a bounded
                              last_row.

Output rows are produced one at a time as the consumer pulls them. Gap and
trailing null rows are generated on demand, and at most one raw row is held
back while its gap is being filled. While the width of an unbounded-column
range is still open, blank rows are consumed without being held, so only a
row with content can fix the width.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Sequence

from .errors import AppError, BAD_OPTION, MISSING_HEADER_ROW, SOURCE_ORDERING_VIOLATION
from .header import extract_names, fit_names
from .io import is_blank_row
from .models import AddressRange, OutputRow, RawRow, ReadStats, ReconciliationPolicy
from .transform import RowProjector, row_shape_width


logger = logging.getLogger("sheet_reader")

WIDTH_FROM_HEADER = "header"
WIDTH_FROM_DATA = "data"
WIDTH_SOURCES = (WIDTH_FROM_HEADER, WIDTH_FROM_DATA)


class ReconcilerState(Enum):
    BEFORE_HEADER = "before_header"
    AWAITING_ROW = "awaiting_row"
    DRAINING = "draining"
    DONE = "done"


class RowReconciler:
    """
    Iterator of OutputRow for one read operation. Not restartable.

    rows must already be limited to address_range's rows. schema, when given,
    fixes the output width and column names. width_from picks which row fixes
    the width of an unbounded-column range: the header row ("header", the
    default, falling back to the first data row with content when there is no
    header) or the first data row with content ("data").
    """

    def __init__(
        self,
        rows: Iterable[RawRow],
        address_range: AddressRange,
        policy: Optional[ReconciliationPolicy] = None,
        schema: Optional[Sequence[str]] = None,
        width_from: str = WIDTH_FROM_HEADER,
    ):
        if width_from not in WIDTH_SOURCES:
            raise AppError(
                BAD_OPTION,
                f"width_from must be one of {WIDTH_SOURCES} (got {width_from!r})",
                {"option": "width_from"},
            )
        self._rows: Iterator[RawRow] = iter(rows)
        self.address_range = address_range
        self.policy = policy or ReconciliationPolicy()
        self._schema = list(schema) if schema is not None else None
        self._width_from = width_from
        self._projector = RowProjector(
            address_range,
            len(self._schema) if self._schema is not None else None,
        )
        self._header_names: Optional[List[str]] = None

        self.state = (
            ReconcilerState.BEFORE_HEADER if self.policy.has_header else ReconcilerState.AWAITING_ROW
        )
        self.expected_next_index = address_range.first_row
        self._last_index: Optional[int] = None
        self._held: Optional[RawRow] = None
        self._blank_tail: Optional[int] = None
        self._blank_width = 0
        self._exhausted = False
        self.stats = ReadStats()

    # ---- Iterator protocol ----

    def __iter__(self) -> "RowReconciler":
        return self

    def __next__(self) -> OutputRow:
        while True:
            if self.state is ReconcilerState.DONE:
                raise StopIteration
            out = self._step()
            if out is not None:
                self.stats.rows_emitted += 1
                if out.synthetic:
                    self.stats.synthetic_rows += 1
                return out

    # ---- Column names ----

    @property
    def width(self) -> Optional[int]:
        return self._projector.width

    @property
    def header_names(self) -> Optional[List[str]]:
        return list(self._header_names) if self._header_names is not None else None

    @property
    def columns(self) -> List[str]:
        """
        Output column names. When the width is not known yet this pulls the
        header row and the data rows up to the first one with content.
        """
        if self.state is ReconcilerState.BEFORE_HEADER:
            self._consume_header()
        if not self._projector.is_fixed:
            if self.state is ReconcilerState.AWAITING_ROW and self._held is None:
                self._held = self._pull_sized()
            self._projector.fix_width(fallback=self._fallback_width())
        width = self._projector.width
        if self._schema is not None:
            return fit_names(self._schema, width)
        return fit_names(self._header_names or [], width)

    # ---- State machine ----

    def _step(self) -> Optional[OutputRow]:
        if self.state is ReconcilerState.BEFORE_HEADER:
            self._consume_header()
            return None

        keep = self.policy.keep_undefined_rows

        if self.state is ReconcilerState.AWAITING_ROW:
            if self._held is None:
                self._held = self._pull_sized()
                if self._held is None:
                    self.state = ReconcilerState.DRAINING
                    return None

            row = self._held
            if keep and row.index > self.expected_next_index:
                out = self._projector.null_row(self.expected_next_index)
                self.expected_next_index += 1
                return out

            self._held = None
            self.expected_next_index = row.index + 1
            if not is_blank_row(row):
                return self._projector.project(row)
            if keep:
                return self._projector.null_row(row.index)
            self.stats.rows_dropped += 1
            return None

        if self.state is ReconcilerState.DRAINING:
            fill_to = self.address_range.last_row
            if fill_to is None:
                fill_to = self._blank_tail
            if keep and fill_to is not None and self.expected_next_index <= fill_to:
                out = self._projector.null_row(self.expected_next_index)
                self.expected_next_index += 1
                return out
            self.state = ReconcilerState.DONE
            logger.debug(
                "Finished %s: %d rows (%d synthetic), %d blank rows dropped",
                self.address_range.to_address(),
                self.stats.rows_emitted,
                self.stats.synthetic_rows,
                self.stats.rows_dropped,
            )
        return None

    def _consume_header(self) -> None:
        row = self._pull()
        if row is None:
            self.state = ReconcilerState.DONE
            raise AppError(
                MISSING_HEADER_ROW,
                f"No rows in {self.address_range.to_address()} to use as header",
                {"address": self.address_range.to_address()},
            )
        if self._width_from == WIDTH_FROM_HEADER:
            self._projector.fix_width(row)
        self._header_names = extract_names(row, self.address_range, self._projector.width)
        self.expected_next_index = row.index + 1
        self.state = ReconcilerState.AWAITING_ROW
        logger.debug("Header row %d: %s", row.index, self._header_names)

    def _pull(self) -> Optional[RawRow]:
        if self._exhausted:
            return None
        try:
            row = next(self._rows)
        except StopIteration:
            self._exhausted = True
            return None
        except AppError:
            self.state = ReconcilerState.DONE
            raise
        if self._last_index is not None and row.index <= self._last_index:
            self.state = ReconcilerState.DONE
            raise ordering_violation(row.index, self._last_index)
        self._last_index = row.index
        return row

    def _pull_sized(self) -> Optional[RawRow]:
        """
        Next row to hold, with the output width fixed. Blank rows met while
        the width is still open are consumed here: dropped without keep,
        left to the gap fill with keep.
        """
        while True:
            row = self._pull()
            if row is None:
                self._projector.fix_width(fallback=self._fallback_width())
                return None
            if self._projector.is_fixed or not is_blank_row(row):
                self._projector.fix_width(row)
                return row
            self._blank_tail = row.index
            self._blank_width = max(self._blank_width, row_shape_width(row, self.address_range))
            if not self.policy.keep_undefined_rows:
                self.stats.rows_dropped += 1

    def _fallback_width(self) -> int:
        if self._header_names is not None:
            return len(self._header_names)
        return self._blank_width


def ordering_violation(index: int, previous: int) -> AppError:
    return AppError(
        SOURCE_ORDERING_VIOLATION,
        f"Row {index} arrived after row {previous}",
        {"row": index, "previous_row": previous},
    )
