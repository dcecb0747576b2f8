from typing import Any, Callable, List, Optional, Union
import logging

from formgrid.core.config import settings
from formgrid.core.exceptions import NamingCollisionError
from formgrid.schemas.form import (
    CHOICE_TYPES,
    FieldDefinition,
    FieldType,
    FormDefinition,
    OptionItem,
    PageDefinition,
    RepeaterConfig,
    SectionDefinition,
    SectionKind,
)
from formgrid.services.grid import clamp_into_row, compact_rows, resolve_overlaps
from formgrid.services.naming import ensure_unique_name, sanitize_name, unique_name
from formgrid.services.schema_index import NodeKind, SchemaIndex, SchemaNode

logger = logging.getLogger(__name__)

UNSAVED_CHANGES_PROMPT = "You have unsaved changes. Are you sure you want to close without saving?"

BASE_RULES = ["required", "pattern", "message"]
LENGTH_RULES = ["minLength", "maxLength"]
RANGE_RULES = ["min", "max"]

GEOMETRY_KEYS = ("grid_row", "grid_column", "column_span")

# Children are edited through the layout engine or the builder, never staged
CHILD_KEYS = {NodeKind.PAGE: "sections", NodeKind.SECTION: "fields"}

RULE_ATTRIBUTES = {
    "required": "required",
    "pattern": "pattern",
    "message": "message",
    "minLength": "min_length",
    "maxLength": "max_length",
    "min": "min",
    "max": "max",
}


class NodeConfigEditor:
    """
    Staged editing of one page, section or field.

    Edits go to a private copy of the node; the committed schema only changes
    on save(). Leaving a node with unsaved edits asks the confirm callback
    first and discards the copy when the user agrees.
    """

    def __init__(self, form: FormDefinition, confirm: Optional[Callable[[str], bool]] = None,
                 on_saved: Optional[Callable[[SchemaNode], None]] = None):
        self.form = form
        self.index = SchemaIndex(form)
        self._confirm = confirm or (lambda message: False)
        self._on_saved = on_saved
        self.target_id: Optional[str] = None
        self.kind: Optional[NodeKind] = None
        self.staged: Optional[SchemaNode] = None
        self.dirty = False
        self._geometry_edited = False

    @property
    def is_open(self) -> bool:
        return self.staged is not None

    def open(self, node_id: str) -> bool:
        if self.is_open and node_id == self.target_id:
            return True
        if self.dirty and not self._confirm(UNSAVED_CHANGES_PROMPT):
            logger.info("Kept staged edits of %s; switch to %s cancelled", self.target_id, node_id)
            return False

        self.index.refresh()
        entry = self.index.entry(node_id)
        self.target_id = node_id
        self.kind = entry.kind
        self.staged = entry.node.model_copy(deep=True)
        self.dirty = False
        self._geometry_edited = False
        logger.info("Editing %s %s", entry.kind.value, node_id)
        return True

    def close(self) -> bool:
        if self.dirty and not self._confirm(UNSAVED_CHANGES_PROMPT):
            return False
        if self.dirty:
            logger.info("Discarded staged edits of %s", self.target_id)
        self._reset()
        return True

    def _reset(self) -> None:
        self.target_id = None
        self.kind = None
        self.staged = None
        self.dirty = False
        self._geometry_edited = False

    def _require(self, kind: Optional[NodeKind] = None) -> Any:
        if not self.is_open:
            raise RuntimeError("No node is open for editing")
        if kind is not None and self.kind != kind:
            raise ValueError(f"Operation needs a {kind.value}, editing a {self.kind.value}")
        return self.staged

    # ------------------------------------------------------------------
    # Generic properties
    # ------------------------------------------------------------------
    def update(self, **changes: Any) -> None:
        node = self._require()
        for key, value in changes.items():
            if key not in type(node).model_fields:
                raise ValueError(f"Unknown property '{key}' for {self.kind.value}")
            if key == CHILD_KEYS.get(self.kind):
                raise ValueError(f"'{key}' cannot be edited here")
            if key == "kind":
                self.set_kind(value)
                continue
            if key == "type" and self.kind == NodeKind.FIELD:
                self.set_type(value)
                continue
            if key == "required" and self.kind == NodeKind.FIELD:
                self.set_required(value)
                continue
            if key == "name":
                value = sanitize_name(value)
            if key in GEOMETRY_KEYS:
                self._geometry_edited = True
            setattr(node, key, value)
        self.dirty = True

    def set_type(self, field_type: Union[str, FieldType]) -> None:
        field: FieldDefinition = self._require(NodeKind.FIELD)
        field.type = FieldType(field_type)
        if field.type == FieldType.SECTION and field.section is None:
            field.section = SectionDefinition(title=field.label)
        if field.type == FieldType.TAB and field.pages is None:
            field.pages = []
        self.dirty = True

    def set_required(self, required: bool) -> None:
        field: FieldDefinition = self._require(NodeKind.FIELD)
        field.required = bool(required)
        field.validation.required = bool(required)
        self.dirty = True

    def set_kind(self, kind: Union[str, SectionKind]) -> None:
        section: SectionDefinition = self._require(NodeKind.SECTION)
        section.kind = SectionKind("normal" if kind == "regular" else kind)
        if section.kind == SectionKind.REPEATER:
            existing = section.repeater_config
            section.repeater_config = existing or RepeaterConfig(
                min_rows=settings.DEFAULT_REPEATER_MIN_ROWS,
                max_rows=settings.DEFAULT_REPEATER_MAX_ROWS,
                add_label=settings.DEFAULT_REPEATER_ADD_LABEL,
                remove_label=settings.DEFAULT_REPEATER_REMOVE_LABEL,
            )
        else:
            section.repeater_config = None
        self.dirty = True

    def update_repeater(self, **changes: Any) -> None:
        section: SectionDefinition = self._require(NodeKind.SECTION)
        if not section.is_repeater:
            raise ValueError("Section is not a repeater")
        data = section.repeater_config.model_dump()
        data.update(changes)
        section.repeater_config = RepeaterConfig(**data)
        self.dirty = True

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------
    def _choice_field(self) -> FieldDefinition:
        field: FieldDefinition = self._require(NodeKind.FIELD)
        if field.type not in CHOICE_TYPES:
            raise ValueError(f"Fields of type '{field.type.value}' have no options")
        return field

    @property
    def options(self) -> List[Union[str, OptionItem]]:
        return list(self._choice_field().options)

    def add_option(self, value: str = "") -> int:
        field = self._choice_field()
        field.options = [*field.options, value]
        self.dirty = True
        return len(field.options) - 1

    def update_option(self, index: int, value: str) -> None:
        field = self._choice_field()
        options = list(field.options)
        current = options[index]
        if isinstance(current, OptionItem):
            options[index] = OptionItem(value=current.value, label=value)
        else:
            options[index] = value
        field.options = options
        self.dirty = True

    def remove_option(self, index: int) -> None:
        field = self._choice_field()
        options = list(field.options)
        del options[index]
        field.options = options
        self.dirty = True

    # ------------------------------------------------------------------
    # Validation rules
    # ------------------------------------------------------------------
    def validation_fields(self) -> List[str]:
        field: FieldDefinition = self._require(NodeKind.FIELD)
        exposed = list(BASE_RULES)
        if field.type in (FieldType.TEXT, FieldType.TEXTAREA):
            exposed += LENGTH_RULES
        elif field.type == FieldType.NUMBER:
            exposed += RANGE_RULES
        return exposed

    def set_validation(self, rule: str, value: Any) -> None:
        if rule not in self.validation_fields():
            raise ValueError(f"Rule '{rule}' is not available for this field type")
        if rule == "required":
            self.set_required(value)
            return
        setattr(self.staged.validation, RULE_ATTRIBUTES[rule], value)
        self.dirty = True

    # ------------------------------------------------------------------
    # Tabs
    # ------------------------------------------------------------------
    def _tab_field(self) -> FieldDefinition:
        field: FieldDefinition = self._require(NodeKind.FIELD)
        if field.type != FieldType.TAB:
            raise ValueError("Only tab fields hold tabs")
        return field

    def add_tab(self, title: Optional[str] = None) -> str:
        field = self._tab_field()
        page = PageDefinition(
            title=title or f"Tab {len(field.pages) + 1}",
            sections=[SectionDefinition(title="New Section")],
        )
        field.pages = [*field.pages, page]
        self.dirty = True
        return page.id

    def rename_tab(self, index: int, title: str) -> None:
        self._tab_field().pages[index].title = title
        self.dirty = True

    def remove_tab(self, index: int) -> None:
        field = self._tab_field()
        pages = list(field.pages)
        del pages[index]
        field.pages = pages
        self.dirty = True

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------
    def save(self) -> SchemaNode:
        """
        Write the staged node back at its position.

        Anything the editor does not own is taken from the committed node as
        it is now, since the layout engine may have changed it while the
        editor was open: children of pages and sections, the contents of
        nested containers, and a field's geometry unless it was edited here.
        A saved field is then clamped into the grid and its siblings are
        pushed clear of it.
        """
        node = self._require()
        self.index.refresh()
        committed = self.index.entry(self.target_id).node
        self._merge_committed(node, committed)

        section = None
        if self.kind == NodeKind.FIELD:
            section = self.index.section_of(self.target_id)
            names = [f.name for f in section.fields if f.id != self.target_id]
            try:
                ensure_unique_name(node.name, names, section.id)
            except NamingCollisionError as e:
                node.name = unique_name(node.name, names)
                logger.warning("%s; saved as %s", e, node.name)

        self.index.replace(self.target_id, node)

        if section is not None:
            clamp_into_row(node)
            resolve_overlaps(section.fields, [node], pinned=node)
            compact_rows(section.fields)

        logger.info("Saved %s %s", self.kind.value, self.target_id)
        self._reset()
        if self._on_saved is not None:
            self._on_saved(node)
        return node

    def _merge_committed(self, node: SchemaNode, committed: SchemaNode) -> None:
        child_key = CHILD_KEYS.get(self.kind)
        if child_key is not None:
            setattr(node, child_key, getattr(committed, child_key))
            return

        if not self._geometry_edited:
            for key in GEOMETRY_KEYS:
                setattr(node, key, getattr(committed, key))
        if node.type == FieldType.SECTION and committed.section is not None:
            node.section = committed.section
        if node.type == FieldType.TAB and node.pages:
            committed_tabs = {page.id: page for page in committed.pages or []}
            for page in node.pages:
                if page.id in committed_tabs:
                    page.sections = committed_tabs[page.id].sections
