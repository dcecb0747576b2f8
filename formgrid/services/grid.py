"""
Grid coordinate utilities shared by the layout engine and the interpreter.

Every section lays its fields out on a 12-column grid. A field occupies the
closed column interval [gridColumn, gridColumn + span - 1] on its gridRow.
Spans are either a bare integer (same on every breakpoint) or a responsive
{mobile, tablet, desktop} object; layout decisions always use the desktop span.
"""

from typing import Any, Dict, List, Optional, Tuple, Union
import logging

from formgrid.core.config import settings
from formgrid.schemas.form import (
    GRID_COLUMNS,
    FieldDefinition,
    FieldType,
    PageDefinition,
    ResponsiveSpan,
)

logger = logging.getLogger(__name__)

BREAKPOINT_DEFAULTS = {"mobile": 12, "tablet": 6, "desktop": 4}

SpanValue = Optional[Union[int, ResponsiveSpan, Dict[str, Any]]]


def resolve_span(column_span: SpanValue, breakpoint: str = "desktop") -> int:
    """
    Resolve a column span for one breakpoint.

    Args:
        column_span: Bare integer, responsive object/dict, or None
        breakpoint: "mobile", "tablet" or "desktop"

    Returns:
        Span clamped to 1..12
    """
    if column_span is None or column_span == 0:
        span = settings.DEFAULT_FIELD_SPAN
    elif isinstance(column_span, int):
        span = column_span
    else:
        if isinstance(column_span, ResponsiveSpan):
            column_span = column_span.model_dump()
        span = column_span.get(breakpoint) or BREAKPOINT_DEFAULTS[breakpoint]
    return max(1, min(GRID_COLUMNS, int(span)))


def field_span(field: FieldDefinition) -> int:
    return resolve_span(field.column_span)


def set_field_span(field: FieldDefinition, span: int) -> None:
    """Write a desktop span back, keeping the responsive form when present"""
    if isinstance(field.column_span, ResponsiveSpan):
        field.column_span.desktop = span
    else:
        field.column_span = span


def field_interval(field: FieldDefinition) -> Tuple[int, int]:
    start = field.grid_column or 1
    return start, start + field_span(field) - 1


def intervals_overlap(a: Tuple[int, int], b: Tuple[int, int]) -> bool:
    return a[0] <= b[1] and b[0] <= a[1]


def fits_in_row(column: int, span: int) -> bool:
    return column >= 1 and column + span - 1 <= GRID_COLUMNS


def responsive_col_span_classes(column_span: SpanValue) -> str:
    """CSS utility classes for a span: col-span-N md:col-span-N lg:col-span-N"""
    if column_span is None or isinstance(column_span, int):
        return f"col-span-{column_span or GRID_COLUMNS}"
    mobile = resolve_span(column_span, "mobile")
    tablet = resolve_span(column_span, "tablet")
    desktop = resolve_span(column_span, "desktop")
    return f"col-span-{mobile} md:col-span-{tablet} lg:col-span-{desktop}"


def grid_column_style(column_span: SpanValue, grid_column: Optional[int] = 1) -> Optional[str]:
    # Responsive spans are left to the utility classes
    if column_span is not None and not isinstance(column_span, int):
        return None
    return f"{grid_column or 1} / span {column_span or GRID_COLUMNS}"


def sort_fields_by_grid_position(fields: List[FieldDefinition]) -> List[FieldDefinition]:
    return sorted(fields, key=lambda f: (f.grid_row or 1, f.grid_column or 1))


def calculate_grid_positions(fields: List[FieldDefinition]) -> List[FieldDefinition]:
    """
    Give legacy fields without coordinates an explicit position.

    Fields are packed left to right in list order, wrapping to a new row when
    the next span would pass column 12. Fields that already carry both a row
    and a column keep them and move the cursor past themselves.
    """
    row, col = 1, 1
    for field in fields:
        span = field_span(field)
        if field.grid_row and field.grid_column:
            row, col = field.grid_row, field.grid_column + span
            continue
        if field.column_span is None:
            field.column_span = settings.DEFAULT_FIELD_SPAN
        if col + span - 1 > GRID_COLUMNS:
            row, col = row + 1, 1
        field.grid_row = row
        field.grid_column = col
        col += span
    return fields


def migrate_fields_to_grid(pages: List[PageDefinition]) -> List[PageDefinition]:
    """Position every field of every section, nested containers included"""
    for page in pages:
        for section in page.sections:
            calculate_grid_positions(section.fields)
            for field in section.fields:
                if field.section is not None:
                    calculate_grid_positions(field.section.fields)
                if field.pages:
                    migrate_fields_to_grid(field.pages)
    return pages


def next_grid_position(fields: List[FieldDefinition], field_type: str = "text") -> Tuple[int, int]:
    """
    Slot for a new field: after the last field when its row still has room
    for a default-span field, otherwise the start of the next row.
    """
    if not fields:
        return 1, 1

    last = sort_fields_by_grid_position(fields)[-1]
    last_row = last.grid_row or 1
    last_col = last.grid_column or 1

    # Nested sections and tabs always start on a new row
    if field_type in (FieldType.SECTION, FieldType.TAB):
        return last_row + 1, 1

    next_col = last_col + field_span(last)
    if next_col + settings.DEFAULT_FIELD_SPAN - 1 <= GRID_COLUMNS:
        return last_row, next_col
    return last_row + 1, 1


def validate_grid_positions(fields: List[FieldDefinition]) -> Tuple[bool, List[str]]:
    errors = []
    occupied: Dict[Tuple[int, int], str] = {}

    for field in fields:
        row = field.grid_row or 1
        col = field.grid_column or 1
        span = field_span(field)

        if col < 1 or col > GRID_COLUMNS:
            errors.append(f"Field {field.name} has invalid column: {col}")
        if col + span - 1 > GRID_COLUMNS:
            errors.append(f"Field {field.name} exceeds grid width: column {col} + span {span}")

        for c in range(col, col + span):
            other = occupied.get((row, c))
            if other is not None:
                errors.append(f"Field {field.name} overlaps with {other} at row {row}, column {c}")
                break
        for c in range(col, col + span):
            occupied.setdefault((row, c), field.name)

    return len(errors) == 0, errors


def compact_rows(fields: List[FieldDefinition]) -> bool:
    """
    Renumber used rows to 1..k preserving their order. Columns are untouched.

    Returns:
        True when any row number changed
    """
    used = sorted({f.grid_row or 1 for f in fields})
    mapping = {row: index for index, row in enumerate(used, start=1)}
    changed = False
    for field in fields:
        new_row = mapping[field.grid_row or 1]
        if new_row != field.grid_row:
            field.grid_row = new_row
            changed = True
    return changed


def reflow_fields(fields: List[FieldDefinition]) -> None:
    """Repack every field sequentially in list order, wrapping at 12 columns"""
    row, col = 1, 1
    for field in fields:
        span = field_span(field)
        if col + span - 1 > GRID_COLUMNS:
            row, col = row + 1, 1
        field.grid_row = row
        field.grid_column = col
        col += span
        if col > GRID_COLUMNS:
            row, col = row + 1, 1


def clamp_into_row(field: FieldDefinition) -> None:
    """Pull a field back inside the grid: row >= 1, span 1..12, right edge <= 12"""
    span = field_span(field)
    set_field_span(field, span)
    field.grid_row = max(1, field.grid_row or 1)
    col = max(1, min(GRID_COLUMNS, field.grid_column or 1))
    if not fits_in_row(col, span):
        col = GRID_COLUMNS - span + 1
    field.grid_column = col


def _shift_after(field: FieldDefinition, end_column: int) -> None:
    target = end_column + 1
    if fits_in_row(target, field_span(field)):
        field.grid_column = target
    else:
        field.grid_row = (field.grid_row or 1) + 1
        field.grid_column = 1
    logger.debug("Shifted field %s to row %s, column %s", field.id, field.grid_row, field.grid_column)


def resolve_overlaps(fields: List[FieldDefinition], movers: List[FieldDefinition],
                     pinned: FieldDefinition) -> None:
    """
    Push siblings out of the way of fields that just changed place.

    An overlapped sibling goes to the column right after the pusher's end
    when it still fits the row, otherwise to column 1 of the next row. A
    pushed sibling becomes a pusher itself, so displacement cascades until
    every row is free of overlap. The pinned field never moves; a sibling
    pushed onto it is pushed again past its end. Fields only ever travel
    right or down.
    """
    queue = list(movers)
    while queue:
        pusher = queue.pop(0)
        interval = field_interval(pusher)
        for sibling in fields:
            if sibling is pusher or sibling is pinned:
                continue
            if sibling.grid_row != pusher.grid_row:
                continue
            if not intervals_overlap(field_interval(sibling), interval):
                continue
            _shift_after(sibling, interval[1])
            while sibling.grid_row == pinned.grid_row and intervals_overlap(
                    field_interval(sibling), field_interval(pinned)):
                _shift_after(sibling, field_interval(pinned)[1])
            queue.append(sibling)
