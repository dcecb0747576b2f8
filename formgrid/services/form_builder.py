from typing import Any, Awaitable, Callable, Dict, Optional, Union
import inspect
import logging
import time

from formgrid.core.exceptions import ExternalOperationError, FormSaveError
from formgrid.schemas.form import (
    FieldDefinition,
    FieldType,
    FormDefinition,
    PageDefinition,
    SectionDefinition,
)
from formgrid.services.config_editor import NodeConfigEditor
from formgrid.services.layout_engine import GridLayoutEngine

logger = logging.getLogger(__name__)

SaveCallback = Callable[[Dict[str, Any]], Union[Any, Awaitable[Any]]]


def new_form_definition(title: str = "", description: str = "") -> FormDefinition:
    """Blank form: one page with a Basic Information section"""
    basic = SectionDefinition(
        title="Basic Information",
        fields=[
            FieldDefinition(name="title", label="Title", type=FieldType.TEXT, required=True,
                            column_span=6, grid_row=1, grid_column=1),
            FieldDefinition(name="description", label="Description", type=FieldType.TEXTAREA,
                            column_span=12, grid_row=2, grid_column=1),
        ],
    )
    return FormDefinition(
        title=title,
        description=description,
        pages=[PageDefinition(title="Page 1", sections=[basic])],
    )


class FormBuilder:
    """
    Authoring session over one form.

    Owns the layout engine for field placement and the node editor for
    property edits, and adds page and section management on top. Both share
    the same FormDefinition, so the index is refreshed after every
    structural change made here.
    """

    def __init__(self, form: Optional[FormDefinition] = None, on_save: Optional[SaveCallback] = None,
                 confirm: Optional[Callable[[str], bool]] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.form = form or new_form_definition()
        self.on_save = on_save
        self.engine = GridLayoutEngine(self.form, clock=clock)
        self.editor = NodeConfigEditor(self.form, confirm=confirm,
                                       on_saved=lambda node: self.engine.index.refresh())
        self.saving = False

    @property
    def index(self):
        return self.engine.index

    def _refresh(self) -> None:
        self.engine.index.refresh()
        self.editor.index.refresh()

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------
    def add_page(self, title: Optional[str] = None) -> str:
        page = PageDefinition(
            title=title or f"Page {len(self.form.pages) + 1}",
            sections=[SectionDefinition(title="New Section")],
        )
        self.form.pages.append(page)
        if len(self.form.pages) > 1:
            self.form.settings.multi_page = True
        self._refresh()
        logger.info("Added page %s to form %s", page.id, self.form.id)
        return page.id

    def delete_page(self, page_id: str) -> bool:
        page = self.index.page(page_id)
        if self.form.pages and self.form.pages[0] is page:
            logger.warning("Refused to delete the first page of form %s", self.form.id)
            return False
        self.form.pages[:] = [p for p in self.form.pages if p is not page]
        self._refresh()
        logger.info("Deleted page %s", page_id)
        return True

    def update_page(self, page_id: str, **changes: Any) -> None:
        page = self.index.page(page_id)
        for key, value in changes.items():
            if key not in ("title", "description"):
                raise ValueError(f"Unknown page property '{key}'")
            setattr(page, key, value)

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------
    def add_section(self, page_id: str, title: str = "New Section") -> str:
        page = self.index.page(page_id)
        section = SectionDefinition(title=title)
        page.sections.append(section)
        self._refresh()
        logger.info("Added section %s to page %s", section.id, page_id)
        return section.id

    def delete_section(self, section_id: str) -> bool:
        entry = self.index.entry(section_id)
        if entry.container is None:
            logger.warning("Section %s belongs to a section field; delete the field instead", section_id)
            return False
        entry.container[:] = [s for s in entry.container if s is not entry.node]
        self._refresh()
        logger.info("Deleted section %s", section_id)
        return True

    def update_section(self, section_id: str, **changes: Any) -> None:
        section = self.index.section(section_id)
        for key, value in changes.items():
            if key not in ("title", "description"):
                raise ValueError(f"Unknown section property '{key}'")
            setattr(section, key, value)

    def move_section(self, section_id: str, direction: str) -> bool:
        entry = self.index.entry(section_id)
        if entry.container is None:
            return False
        position = self.index.position(section_id)
        target = position - 1 if direction == "up" else position + 1
        if target < 0 or target >= len(entry.container):
            return False
        sections = entry.container
        sections[position], sections[target] = sections[target], sections[position]
        self._refresh()
        logger.info("Moved section %s %s", section_id, direction)
        return True

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------
    async def save(self) -> Any:
        if not (self.form.title or "").strip():
            raise FormSaveError("Please enter a form title")
        if not self.form.pages:
            raise FormSaveError("Please add at least one page")
        if self.on_save is None:
            raise FormSaveError("No save action configured")

        self.saving = True
        try:
            result = self.on_save(self.form.to_tree())
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error("Saving form %s failed: %s", self.form.id, e)
            raise ExternalOperationError("save", e) from e
        finally:
            self.saving = False

        logger.info("Saved form %s", self.form.id)
        return result
