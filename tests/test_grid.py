"""Tests for the grid coordinate utilities."""

import pytest

from formgrid.schemas.form import FieldDefinition, FieldType, ResponsiveSpan
from formgrid.services.grid import (
    calculate_grid_positions,
    compact_rows,
    field_interval,
    grid_column_style,
    intervals_overlap,
    next_grid_position,
    reflow_fields,
    resolve_span,
    responsive_col_span_classes,
    set_field_span,
    validate_grid_positions,
)


class TestSpans:
    @pytest.mark.parametrize("value,expected", [
        (None, 4),
        (0, 4),
        (6, 6),
        (ResponsiveSpan(), 4),
        ({"mobile": 12, "tablet": 6, "desktop": 3}, 3),
        ({"mobile": 12}, 4),
    ])
    def test_resolve_desktop_span(self, value, expected):
        assert resolve_span(value) == expected

    def test_resolve_other_breakpoints(self):
        span = ResponsiveSpan(mobile=12, tablet=8, desktop=4)
        assert resolve_span(span, "mobile") == 12
        assert resolve_span(span, "tablet") == 8

    def test_set_span_keeps_responsive_form(self, make_field):
        field = make_field("a", span=ResponsiveSpan())
        set_field_span(field, 7)
        assert isinstance(field.column_span, ResponsiveSpan)
        assert field.column_span.desktop == 7

    def test_css_helpers(self):
        assert responsive_col_span_classes(6) == "col-span-6"
        assert responsive_col_span_classes(ResponsiveSpan()) == "col-span-12 md:col-span-6 lg:col-span-4"
        assert grid_column_style(4, 5) == "5 / span 4"
        assert grid_column_style(ResponsiveSpan(), 5) is None


class TestIntervals:
    def test_interval_is_closed(self, make_field):
        assert field_interval(make_field("a", col=9, span=3)) == (9, 11)

    def test_touching_intervals_do_not_overlap(self):
        assert not intervals_overlap((1, 4), (5, 8))
        assert intervals_overlap((1, 5), (5, 8))


class TestPlacement:
    def test_first_slot_of_empty_section(self):
        assert next_grid_position([]) == (1, 1)

    def test_next_slot_after_last_field(self, make_field):
        fields = [make_field("a", col=1)]
        assert next_grid_position(fields) == (1, 5)

    def test_next_slot_wraps_when_row_is_full(self, make_field):
        fields = [make_field("a", col=1), make_field("b", col=5), make_field("c", col=9)]
        assert next_grid_position(fields) == (2, 1)

    def test_containers_start_a_new_row(self, make_field):
        fields = [make_field("a", col=1)]
        assert next_grid_position(fields, FieldType.SECTION) == (2, 1)

    def test_last_field_taken_by_grid_position(self, make_field):
        # List order differs from visual order
        fields = [make_field("late", row=2, col=1), make_field("early", row=1, col=1)]
        assert next_grid_position(fields) == (2, 5)

    def test_legacy_fields_packed_in_order(self):
        fields = [FieldDefinition(name=n, column_span=6) for n in ("a", "b", "c")]
        calculate_grid_positions(fields)
        assert [(f.grid_row, f.grid_column) for f in fields] == [(1, 1), (1, 7), (2, 1)]

    def test_legacy_field_without_span_gets_default(self):
        field = FieldDefinition(name="a")
        calculate_grid_positions([field])
        assert field.column_span == 4
        assert (field.grid_row, field.grid_column) == (1, 1)

    def test_reflow_repacks_in_list_order(self, make_field):
        fields = [make_field("a", row=5, col=9, span=8), make_field("b", row=1, col=1, span=8)]
        reflow_fields(fields)
        assert [(f.grid_row, f.grid_column) for f in fields] == [(1, 1), (2, 1)]


class TestValidation:
    def test_valid_layout(self, make_field):
        ok, errors = validate_grid_positions([make_field("a", col=1), make_field("b", col=5)])
        assert ok
        assert errors == []

    def test_overlap_reported(self, make_field):
        ok, errors = validate_grid_positions([make_field("a", col=1), make_field("b", col=3)])
        assert not ok
        assert "overlaps" in errors[0]


class TestCompaction:
    def test_gaps_removed_preserving_order(self, make_field):
        fields = [make_field("a", row=1), make_field("b", row=3), make_field("c", row=3, col=5), make_field("d", row=7)]
        assert compact_rows(fields) is True
        assert [f.grid_row for f in fields] == [1, 2, 2, 3]
        assert [f.grid_column for f in fields] == [1, 1, 5, 1]

    def test_contiguous_rows_unchanged(self, make_field):
        fields = [make_field("a", row=1), make_field("b", row=2)]
        assert compact_rows(fields) is False
        assert [f.grid_row for f in fields] == [1, 2]
