from typing import Any, Dict, List, NamedTuple, Optional, Union
from enum import Enum
import logging

from formgrid.core.exceptions import NodeNotFoundError
from formgrid.schemas.form import (
    FieldDefinition,
    FormDefinition,
    PageDefinition,
    SectionDefinition,
)

logger = logging.getLogger(__name__)

SchemaNode = Union[PageDefinition, SectionDefinition, FieldDefinition]


class NodeKind(str, Enum):
    PAGE = 'page'
    SECTION = 'section'
    FIELD = 'field'


class IndexEntry(NamedTuple):
    kind: NodeKind
    node: Any
    # List holding the node; None for a section nested directly on a field
    container: Optional[List[Any]]
    parent_id: Optional[str]


class SchemaIndex:
    """
    Flat id -> node lookup over the Page -> Section -> Field tree.

    The tree stays the source of truth and is mutated in place; the index is
    rebuilt with refresh() after any operation that adds, removes or moves
    nodes between containers.
    """

    def __init__(self, form: FormDefinition):
        self.form = form
        self._entries: Dict[str, IndexEntry] = {}
        self.refresh()

    def refresh(self) -> None:
        self._entries = {}
        self._index_pages(self.form.pages, None)

    def _index_pages(self, pages: List[PageDefinition], parent_id: Optional[str]) -> None:
        for page in pages:
            self._entries[page.id] = IndexEntry(NodeKind.PAGE, page, pages, parent_id)
            for section in page.sections:
                self._index_section(section, page.sections, page.id)

    def _index_section(self, section: SectionDefinition, container: Optional[List[Any]],
                       parent_id: Optional[str]) -> None:
        self._entries[section.id] = IndexEntry(NodeKind.SECTION, section, container, parent_id)
        for field in section.fields:
            self._entries[field.id] = IndexEntry(NodeKind.FIELD, field, section.fields, section.id)
            if field.section is not None:
                self._index_section(field.section, None, field.id)
            if field.pages:
                self._index_pages(field.pages, field.id)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._entries

    def entry(self, node_id: str) -> IndexEntry:
        try:
            return self._entries[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id)

    def _typed(self, node_id: str, kind: NodeKind) -> Any:
        entry = self.entry(node_id)
        if entry.kind != kind:
            raise NodeNotFoundError(node_id)
        return entry.node

    def page(self, page_id: str) -> PageDefinition:
        return self._typed(page_id, NodeKind.PAGE)

    def section(self, section_id: str) -> SectionDefinition:
        return self._typed(section_id, NodeKind.SECTION)

    def field(self, field_id: str) -> FieldDefinition:
        return self._typed(field_id, NodeKind.FIELD)

    def section_of(self, field_id: str) -> SectionDefinition:
        entry = self.entry(field_id)
        if entry.kind != NodeKind.FIELD:
            raise NodeNotFoundError(field_id)
        return self.section(entry.parent_id)

    def position(self, node_id: str) -> Optional[int]:
        entry = self.entry(node_id)
        if entry.container is None:
            return None
        for index, node in enumerate(entry.container):
            if node is entry.node:
                return index
        return None

    def replace(self, node_id: str, new_node: SchemaNode) -> None:
        """Swap a node for another one at the same position"""
        entry = self.entry(node_id)
        if entry.container is None:
            # Nested section: owned by its container field
            parent = self.field(entry.parent_id)
            parent.section = new_node
        else:
            entry.container[self.position(node_id)] = new_node
        logger.info("Replaced %s %s", entry.kind.value, node_id)
        self.refresh()

    def nodes(self, kind: NodeKind) -> List[Any]:
        return [entry.node for entry in self._entries.values() if entry.kind == kind]
