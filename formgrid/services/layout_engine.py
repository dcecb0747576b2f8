from typing import Callable, Dict, List, NamedTuple, Optional, Tuple, Union
from enum import Enum
import logging
import time

from formgrid.core.config import settings
from formgrid.core.exceptions import (
    NamingCollisionError,
    NodeNotFoundError,
    StructuralPlacementError,
)
from formgrid.schemas.form import (
    CHOICE_TYPES,
    CONTAINER_TYPES,
    GRID_COLUMNS,
    FieldDefinition,
    FieldType,
    FormDefinition,
    PageDefinition,
    SectionDefinition,
    new_id,
)
from formgrid.services.grid import (
    clamp_into_row,
    compact_rows,
    field_span,
    fits_in_row,
    migrate_fields_to_grid,
    next_grid_position,
    reflow_fields,
    resolve_overlaps,
    set_field_span,
    sort_fields_by_grid_position,
    validate_grid_positions,
)
from formgrid.services.naming import (
    copy_label,
    copy_name,
    ensure_unique_name,
    next_field_name,
    unique_name,
)
from formgrid.services.schema_index import NodeKind, SchemaIndex

logger = logging.getLogger(__name__)

DEFAULT_LABELS = {
    FieldType.SECTION: "New Section",
    FieldType.TAB: "New Tabs",
    FieldType.INFO: "Information",
}


class ResizeEdge(str, Enum):
    LEFT = 'left'
    RIGHT = 'right'


class FieldTarget(NamedTuple):
    """Drop onto another field: the two fields trade places"""
    field_id: str


class CellTarget(NamedTuple):
    """Drop onto an empty grid cell"""
    section_id: str
    row: int
    column: int


MoveTarget = Union[FieldTarget, CellTarget]


def regenerate_ids(field: FieldDefinition) -> FieldDefinition:
    field.id = new_id()
    if field.section is not None:
        field.section.id = new_id()
        for nested in field.section.fields:
            regenerate_ids(nested)
    for page in field.pages or []:
        page.id = new_id()
        for section in page.sections:
            section.id = new_id()
            for nested in section.fields:
                regenerate_ids(nested)
    return field


def clone_field(field: FieldDefinition) -> FieldDefinition:
    return regenerate_ids(field.model_copy(deep=True))


def _without(fields: List[FieldDefinition], field: FieldDefinition) -> List[FieldDefinition]:
    # Pydantic models compare by value; removal has to go by identity
    return [f for f in fields if f is not field]


class GridLayoutEngine:
    """
    Structural editing of field placement inside the sections of a form.

    All operations mutate the FormDefinition in place. Placement problems are
    resolved here (clamped, rejected or pushed aside); nothing raises to the
    caller except lookups of ids that do not exist.
    """

    def __init__(self, form: FormDefinition, clock: Callable[[], float] = time.monotonic):
        self.form = form
        self.index = SchemaIndex(form)
        self._clock = clock
        self._duplicate_busy_until: Dict[str, float] = {}
        # field id -> (gridColumn, span) captured when a resize gesture starts
        self._resize_origin: Dict[str, Tuple[int, int]] = {}
        migrate_fields_to_grid(form.pages)
        logger.info("GridLayoutEngine initialized for form %s", form.id)

    # ------------------------------------------------------------------
    # Add
    # ------------------------------------------------------------------
    def add_field(self, section_id: str, field_type: Union[str, FieldType] = FieldType.TEXT,
                  label: Optional[str] = None) -> str:
        section = self.index.section(section_id)
        field_type = FieldType(field_type)

        row, col = next_grid_position(section.fields, field_type)
        span = GRID_COLUMNS if field_type in CONTAINER_TYPES else settings.DEFAULT_FIELD_SPAN

        field = FieldDefinition(
            name=next_field_name(f.name for f in section.fields),
            label=label or DEFAULT_LABELS.get(field_type, "New Field"),
            type=field_type,
            column_span=span,
            grid_row=row,
            grid_column=col,
        )
        if field_type in CHOICE_TYPES:
            field.options = ["Option 1", "Option 2"]
        if field_type == FieldType.TAB:
            field.pages = [PageDefinition(title="Tab 1", sections=[SectionDefinition(title="New Section")])]

        section.fields.append(field)
        self.index.refresh()
        logger.info("Added %s field %s to section %s at row %s, column %s",
                    field_type.value, field.id, section_id, row, col)
        return field.id

    # ------------------------------------------------------------------
    # Resize
    # ------------------------------------------------------------------
    def begin_resize(self, field_id: str) -> None:
        field = self.index.field(field_id)
        self._resize_origin[field_id] = (field.grid_column or 1, field_span(field))

    def resize_field(self, section_id: str, field_id: str, edge: Union[str, ResizeEdge],
                     requested_span: int, live: bool = False) -> int:
        """
        Resize a field from one of its edges.

        Args:
            section_id: Section holding the field
            field_id: Field being resized
            edge: "right" keeps gridColumn, "left" keeps the right edge
            requested_span: Desired span, clamped to the grid
            live: True while the pointer is still down; only the field itself
                is touched. The release call (live=False) pushes neighbours.

        Returns:
            The span actually applied
        """
        section = self.index.section(section_id)
        field = self._field_in(section, field_id)
        edge = ResizeEdge(edge)

        if live:
            self._resize_origin.setdefault(field_id, (field.grid_column or 1, field_span(field)))
            origin_span = None
        else:
            origin_span = self._resize_origin.pop(field_id, (field.grid_column or 1, field_span(field)))[1]

        col, span = self._clamp_resize(field, edge, requested_span)
        field.grid_column = col
        set_field_span(field, span)

        if live:
            logger.debug("Live resize of %s: column %s, span %s", field_id, col, span)
            return span

        if span > origin_span:
            resolve_overlaps(section.fields, [field], pinned=field)
        logger.info("Resized field %s (%s edge): column %s, span %s", field_id, edge.value, col, span)
        return span

    def restore_geometry(self, field_id: str) -> bool:
        """Undo an unfinished resize gesture"""
        origin = self._resize_origin.pop(field_id, None)
        if origin is None:
            return False
        field = self.index.field(field_id)
        field.grid_column = origin[0]
        set_field_span(field, origin[1])
        logger.info("Restored geometry of field %s: column %s, span %s", field_id, *origin)
        return True

    def _clamp_resize(self, field: FieldDefinition, edge: ResizeEdge, requested_span: int) -> Tuple[int, int]:
        col = field.grid_column or 1
        requested = max(1, int(requested_span))

        if edge == ResizeEdge.RIGHT:
            max_span = GRID_COLUMNS - col + 1
            if requested > max_span:
                logger.debug("Clamped right-edge resize of %s from %s to %s", field.id, requested, max_span)
            return col, min(requested, max_span)

        right_edge = col + field_span(field) - 1
        new_col = right_edge - requested + 1
        if new_col < 1:
            logger.debug("Clamped left-edge resize of %s at column 1", field.id)
            new_col = 1
        return new_col, right_edge - new_col + 1

    # ------------------------------------------------------------------
    # Move
    # ------------------------------------------------------------------
    def move_field(self, dragged_id: str, target: MoveTarget) -> bool:
        dragged = self.index.field(dragged_id)
        source = self.index.section_of(dragged_id)

        if isinstance(target, FieldTarget):
            if target.field_id == dragged_id:
                return False
            other = self.index.field(target.field_id)
            dest = self.index.section_of(target.field_id)
            if not self._can_enter(dragged, dest):
                logger.warning("Move rejected: field %s cannot be dropped inside itself", dragged_id)
                return False

            dragged_pos = (dragged.grid_row, dragged.grid_column)
            dragged.grid_row, dragged.grid_column = other.grid_row, other.grid_column
            other.grid_row, other.grid_column = dragged_pos

            if dest is not source:
                self._transfer(dragged, source, dest)
            clamp_into_row(dragged)
            clamp_into_row(other)
            resolve_overlaps(dest.fields, [dragged, other], pinned=dragged)
            logger.info("Swapped field %s with field %s", dragged_id, target.field_id)
        else:
            dest = self.index.section(target.section_id)
            try:
                self._check_placement(dragged, target.row, target.column)
            except StructuralPlacementError as e:
                logger.warning("Move rejected: %s", e)
                return False
            if not self._can_enter(dragged, dest):
                logger.warning("Move rejected: field %s cannot be dropped inside itself", dragged_id)
                return False

            if dest is not source:
                self._transfer(dragged, source, dest)
            dragged.grid_row, dragged.grid_column = target.row, target.column
            resolve_overlaps(dest.fields, [dragged], pinned=dragged)
            logger.info("Moved field %s to section %s row %s, column %s",
                        dragged_id, dest.id, target.row, target.column)

        compact_rows(dest.fields)
        if dest is not source:
            compact_rows(source.fields)
        self.index.refresh()
        return True

    def reorder_field(self, field_id: str, direction: str) -> bool:
        """Swap a field with its previous ("up") or next ("down") neighbour in visual order"""
        section = self.index.section_of(field_id)
        ordered = sort_fields_by_grid_position(section.fields)
        position = next(i for i, f in enumerate(ordered) if f.id == field_id)
        neighbour = position - 1 if direction == "up" else position + 1
        if neighbour < 0 or neighbour >= len(ordered):
            return False
        return self.move_field(field_id, FieldTarget(ordered[neighbour].id))

    def _check_placement(self, field: FieldDefinition, row: int, column: int) -> None:
        span = field_span(field)
        if row < 1:
            raise StructuralPlacementError(field.id, f"row {row} is above the grid")
        if not fits_in_row(column, span):
            raise StructuralPlacementError(
                field.id, f"column {column} + span {span} exceeds {GRID_COLUMNS} columns")

    def _can_enter(self, field: FieldDefinition, dest: SectionDefinition) -> bool:
        # Walk up from the destination; reaching the field means a cycle
        node_id = dest.id
        while node_id is not None:
            if node_id == field.id:
                return False
            node_id = self.index.entry(node_id).parent_id
        return True

    def _transfer(self, field: FieldDefinition, source: SectionDefinition, dest: SectionDefinition) -> None:
        source.fields[:] = _without(source.fields, field)
        names = [f.name for f in dest.fields]
        try:
            ensure_unique_name(field.name, names, dest.id)
        except NamingCollisionError as e:
            field.name = unique_name(field.name, names)
            logger.warning("%s; renamed to %s", e, field.name)
        dest.fields.append(field)

    # ------------------------------------------------------------------
    # Delete / duplicate
    # ------------------------------------------------------------------
    def delete_field(self, field_id: str) -> bool:
        section = self.index.section_of(field_id)
        field = self.index.field(field_id)
        section.fields[:] = _without(section.fields, field)
        compact_rows(section.fields)
        self._resize_origin.pop(field_id, None)
        self.index.refresh()
        logger.info("Deleted field %s from section %s", field_id, section.id)
        return True

    def duplicate_field(self, field_id: str) -> Optional[str]:
        section = self.index.section_of(field_id)
        now = self._clock()
        if now < self._duplicate_busy_until.get(section.id, 0.0):
            logger.warning("Duplicate of %s ignored: section %s is still busy", field_id, section.id)
            return None
        self._duplicate_busy_until[section.id] = now + settings.DUPLICATE_GUARD_MS / 1000.0

        original = self.index.field(field_id)
        clone = clone_field(original)
        clone.label = copy_label(original.label, [f.label for f in section.fields])
        clone.name = copy_name(original.name, [f.name for f in section.fields])

        ordered = sort_fields_by_grid_position(section.fields)
        position = next(i for i, f in enumerate(ordered) if f is original)
        ordered.insert(position + 1, clone)
        reflow_fields(ordered)
        section.fields[:] = ordered

        self.index.refresh()
        logger.info("Duplicated field %s as %s (%s)", field_id, clone.id, clone.name)
        return clone.id

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def compact_section(self, section_id: str) -> bool:
        return compact_rows(self.index.section(section_id).fields)

    def validate_layout(self) -> Dict[str, List[str]]:
        """Placement problems per section id; empty when every section is valid"""
        problems = {}
        for section in self.index.nodes(NodeKind.SECTION):
            is_valid, errors = validate_grid_positions(section.fields)
            if not is_valid:
                problems[section.id] = errors
        return problems

    def _field_in(self, section: SectionDefinition, field_id: str) -> FieldDefinition:
        for field in section.fields:
            if field.id == field_id:
                return field
        raise NodeNotFoundError(field_id)
