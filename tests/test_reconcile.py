"""
test_reconcile.py — RowReconciler behaviour over in-memory row sources.

Section 1: Compaction vs retention of undefined rows
Section 2: Header handling
Section 3: Width of unbounded ranges
Section 4: Laziness and failure modes
"""
from __future__ import annotations

import itertools

import pytest

from sheet_reader.errors import (
    AppError,
    BAD_OPTION,
    MISSING_HEADER_ROW,
    SOURCE_ORDERING_VIOLATION,
)
from sheet_reader.models import AddressRange, RawRow, ReconciliationPolicy
from sheet_reader.reader import filter_rows
from sheet_reader.reconcile import ReconcilerState, RowReconciler


# ══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════════════════════

def _row(index, *values, first_col=1):
    return RawRow(index, tuple((first_col + i, v) for i, v in enumerate(values)))


def _run(rows, address, keep=False, header=False, **kwargs):
    rng = AddressRange.parse(address)
    policy = ReconciliationPolicy(keep_undefined_rows=keep, has_header=header)
    return RowReconciler(filter_rows(rows, rng), rng, policy, **kwargs)


def _indices(out):
    return [r.source_index for r in out]


def _scenario_a_rows():
    return [
        _row(1, "a", "b"),
        _row(2, "c", None),
        _row(4, None, None),
    ]


# ══════════════════════════════════════════════════════════════════════════════
# SECTION 1 — COMPACTION VS RETENTION
# ══════════════════════════════════════════════════════════════════════════════

class TestUndefinedRows:

    def test_no_keep_yields_only_non_blank_rows(self):
        out = list(_run(_scenario_a_rows(), "'S'!A1:B5"))
        assert _indices(out) == [1, 2]
        assert [r.values for r in out] == [("a", "b"), ("c", None)]
        assert not any(r.synthetic for r in out)

    def test_keep_fills_every_position_in_bounded_range(self):
        out = list(_run(_scenario_a_rows(), "'S'!A1:B5", keep=True))
        assert _indices(out) == [1, 2, 3, 4, 5]
        assert [r.values for r in out[2:]] == [(None, None)] * 3
        assert [r.synthetic for r in out] == [False, False, True, True, True]

    def test_whitespace_row_survives_both_policies(self):
        rows = [_row(3, " ")]
        for keep in (False, True):
            out = list(_run(rows, "'S'!A1:A3", keep=keep))
            assert out[-1].source_index == 3
            assert out[-1].values == (" ",)
            assert not out[-1].synthetic

    def test_empty_source_with_keep_yields_full_null_table(self):
        out = list(_run([], "'Sheet1'!A1:C10", keep=True))
        assert _indices(out) == list(range(1, 11))
        assert all(r.values == (None, None, None) for r in out)

    def test_empty_source_without_keep_yields_nothing(self):
        assert list(_run([], "'Sheet1'!A1:C10")) == []

    def test_unbounded_rows_do_not_drain(self):
        rows = [_row(2, "x")]
        out = list(_run(rows, "'S'!A1", keep=True))
        assert _indices(out) == [1, 2]

    def test_leading_gap_starts_at_first_row(self):
        out = list(_run([_row(5, "x")], "'S'!A3:A6", keep=True))
        assert _indices(out) == [3, 4, 5, 6]
        assert out[2].values == ("x",)

    def test_rows_outside_range_do_not_count_as_gaps(self):
        rows = [_row(1, "above"), _row(3, "in"), _row(9, "below")]
        out = list(_run(rows, "'S'!A3:A4", keep=True))
        assert _indices(out) == [3, 4]
        assert out[0].values == ("in",)

    def test_retention_law_all_null_iff_absent_or_blank(self):
        present = {2: "b", 5: " ", 7: 0}
        rows = [_row(i, present.get(i)) for i in (2, 3, 5, 7)]
        out = list(_run(rows, "'S'!A1:A8", keep=True))
        assert _indices(out) == list(range(1, 9))
        for r in out:
            assert r.synthetic == (r.source_index not in present)

    def test_compaction_law_and_monotonicity(self):
        rows = [_row(i, i if i % 3 else None) for i in range(1, 30)]
        out = list(_run(rows, "'S'!A1:A40"))
        assert _indices(out) == [i for i in range(1, 30) if i % 3]
        idx = _indices(out)
        assert all(a < b for a, b in zip(idx, idx[1:]))

    def test_stats_count_dropped_and_synthetic(self):
        rec = _run(_scenario_a_rows(), "'S'!A1:B5")
        list(rec)
        assert rec.stats.rows_emitted == 2
        assert rec.stats.rows_dropped == 1
        assert rec.stats.synthetic_rows == 0

        rec = _run(_scenario_a_rows(), "'S'!A1:B5", keep=True)
        list(rec)
        assert rec.stats.rows_emitted == 5
        assert rec.stats.synthetic_rows == 3
        assert rec.stats.rows_dropped == 0


# ══════════════════════════════════════════════════════════════════════════════
# SECTION 2 — HEADER
# ══════════════════════════════════════════════════════════════════════════════

class TestHeader:

    def test_header_row_used_only_for_names(self):
        rows = [_row(1, "ID", "Name"), _row(2, 1, "a"), _row(3, 2, "b")]
        rec = _run(rows, "'S'!A1:B3", header=True)
        out = list(rec)
        assert rec.columns == ["ID", "Name"]
        assert _indices(out) == [2, 3]

    def test_cursor_starts_after_header(self):
        rows = [_row(1, "h"), _row(4, "x")]
        rec = _run(rows, "'S'!A1:A5", keep=True, header=True)
        assert rec.columns == ["h"]
        assert rec.expected_next_index == 2
        assert _indices(list(rec)) == [2, 3, 4, 5]

    def test_header_is_first_in_range_row(self):
        rows = [_row(1, "title"), _row(3, "h"), _row(4, "x")]
        rec = _run(rows, "'S'!A2:A4", header=True)
        assert rec.columns == ["h"]
        assert [r.values for r in rec] == [("x",)]

    def test_blank_header_cells_get_positional_names(self):
        rows = [_row(1, None, "b", None), _row(2, 1, 2, 3)]
        rec = _run(rows, "'S'!A1:C2", header=True)
        assert rec.columns == ["1", "b", "3"]

    def test_missing_header_row_raised_on_first_pull(self):
        rec = _run([_row(1, "outside")], "'S'!A2:B9", header=True)
        with pytest.raises(AppError) as ei:
            next(rec)
        assert ei.value.code == MISSING_HEADER_ROW
        assert rec.state is ReconcilerState.DONE
        with pytest.raises(StopIteration):
            next(rec)

    def test_header_only_sheet_yields_no_rows(self):
        rec = _run([_row(1, "a", "b")], "'S'!A1", header=True)
        assert list(rec) == []
        assert rec.columns == ["a", "b"]

    def test_schema_overrides_header_names_and_width(self):
        rows = [_row(1, "x", "y", "z"), _row(2, 1, 2, 3)]
        rec = _run(rows, "'S'!A1", header=True, schema=["ID", "Pin"])
        assert rec.columns == ["ID", "Pin"]
        assert [r.values for r in rec] == [(1, 2)]


# ══════════════════════════════════════════════════════════════════════════════
# SECTION 3 — WIDTH OF UNBOUNDED RANGES
# ══════════════════════════════════════════════════════════════════════════════

class TestWidth:

    def test_width_from_header_by_default(self):
        rows = [_row(1, "a", "b"), _row(2, 1, 2, 3)]
        rec = _run(rows, "'S'!A1", header=True)
        assert [r.values for r in rec] == [(1, 2)]
        assert rec.width == 2

    def test_width_from_data_row(self):
        rows = [_row(1, "a", "b"), _row(2, 1, 2, 3)]
        rec = _run(rows, "'S'!A1", header=True, width_from="data")
        assert rec.columns == ["a", "b", "3"]
        assert [r.values for r in rec] == [(1, 2, 3)]

    def test_width_fixed_before_leading_gap_rows(self):
        rows = [_row(3, 1, 2)]
        out = list(_run(rows, "'S'!A1", keep=True))
        assert [r.values for r in out] == [(None, None), (None, None), (1, 2)]

    def test_leading_empty_blank_row_does_not_fix_width(self):
        rows = [RawRow(1, ()), _row(2, "a", "b")]
        rec = _run(rows, "'S'!A1")
        assert [r.values for r in rec] == [("a", "b")]
        assert rec.width == 2
        assert rec.stats.rows_dropped == 1

    def test_leading_short_blank_row_does_not_truncate_later_rows(self):
        rows = [_row(1, None), _row(2, "a", "b", "c")]
        out = list(_run(rows, "'S'!A1"))
        assert [r.values for r in out] == [("a", "b", "c")]

    def test_keep_leading_blank_rows_take_width_of_first_content_row(self):
        rows = [_row(1, None), RawRow(2, ()), _row(3, "a", "b", "c")]
        rec = _run(rows, "'S'!A1", keep=True)
        out = list(rec)
        assert _indices(out) == [1, 2, 3]
        assert [r.values for r in out] == [(None,) * 3, (None,) * 3, ("a", "b", "c")]
        assert [r.synthetic for r in out] == [True, True, False]
        assert rec.stats.synthetic_rows == 2

    def test_keep_all_blank_unbounded_rows_use_widest_blank_row(self):
        rows = [_row(1, None), _row(2, None, None)]
        rec = _run(rows, "'S'!A1", keep=True)
        assert rec.columns == ["1", "2"]
        out = list(rec)
        assert _indices(out) == [1, 2]
        assert all(r.values == (None, None) and r.synthetic for r in out)

    def test_blank_rows_after_width_is_fixed_stay_in_place(self):
        rows = [_row(1, "a", "b"), _row(2, None), _row(3, "c")]
        out = list(_run(rows, "'S'!A1", keep=True))
        assert [r.values for r in out] == [("a", "b"), (None, None), ("c", None)]

    def test_data_width_skips_blank_rows_after_header(self):
        rows = [_row(1, "a"), _row(2, None), _row(3, 1, 2)]
        rec = _run(rows, "'S'!A1", header=True, width_from="data")
        assert rec.columns == ["a", "2"]
        assert [r.values for r in rec] == [(1, 2)]

    def test_columns_peek_does_not_lose_rows(self):
        rows = [_row(1, 1, 2), _row(2, 3, 4)]
        rec = _run(rows, "'S'!A1")
        assert rec.columns == ["1", "2"]
        assert _indices(list(rec)) == [1, 2]

    def test_columns_of_empty_unbounded_source(self):
        rec = _run([], "'S'!A1")
        assert rec.columns == []
        assert list(rec) == []

    def test_bad_width_from(self):
        with pytest.raises(AppError) as ei:
            _run([], "'S'!A1", width_from="widest")
        assert ei.value.code == BAD_OPTION


# ══════════════════════════════════════════════════════════════════════════════
# SECTION 4 — LAZINESS AND FAILURES
# ══════════════════════════════════════════════════════════════════════════════

class TestTraversal:

    def test_pulls_at_most_one_row_ahead(self):
        pulled = []

        def source():
            for i in itertools.count(1):
                pulled.append(i)
                yield _row(i * 10, i)

        rec = _run(source(), "'S'!A1", keep=True)
        first = next(rec)
        assert first.source_index == 1
        assert first.synthetic
        assert pulled == [1]

    def test_large_gap_is_generated_lazily(self):
        rows = [_row(1_000_000, "far")]
        rec = _run(rows, "'S'!A1:A1000000", keep=True)
        head = list(itertools.islice(rec, 3))
        assert _indices(head) == [1, 2, 3]

    def test_ordering_violation_is_fatal(self):
        rows = [_row(1, "a"), _row(3, "b"), _row(2, "c")]
        rec = _run(rows, "'S'!A1:A5")
        assert next(rec).source_index == 1
        assert next(rec).source_index == 3
        with pytest.raises(AppError) as ei:
            next(rec)
        assert ei.value.code == SOURCE_ORDERING_VIOLATION
        assert ei.value.details == {"row": 2, "previous_row": 3}
        assert list(rec) == []

    def test_duplicate_index_is_ordering_violation(self):
        rec = _run([_row(2, "a"), _row(2, "b")], "'S'!A1")
        with pytest.raises(AppError) as ei:
            list(rec)
        assert ei.value.code == SOURCE_ORDERING_VIOLATION

    def test_ordering_violation_below_first_row_is_fatal(self):
        rows = [_row(4, "a"), _row(2, "b"), _row(5, "c")]
        rec = _run(rows, "'S'!A3")
        assert next(rec).source_index == 4
        with pytest.raises(AppError) as ei:
            next(rec)
        assert ei.value.code == SOURCE_ORDERING_VIOLATION
        assert ei.value.details == {"row": 2, "previous_row": 4}
        assert rec.state is ReconcilerState.DONE
        assert list(rec) == []

    def test_iteration_is_not_restartable(self):
        rec = _run([_row(1, "a")], "'S'!A1")
        assert len(list(rec)) == 1
        assert list(rec) == []
