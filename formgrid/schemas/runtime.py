from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from enum import Enum

from formgrid.schemas.form import FieldType, OptionItem, SectionKind, AddPosition

class FormMode(str, Enum):
    CREATE = 'create'
    EDIT = 'edit'
    VIEW = 'view'

class NavigationOutcome(str, Enum):
    MOVED = 'moved'
    BLOCKED = 'blocked'
    NOOP = 'noop'

class SectionStatus(str, Enum):
    VALID = 'valid'
    ERROR = 'error'
    EMPTY = 'empty'

class FormAction(str, Enum):
    PREVIOUS = 'previous'
    NEXT = 'next'
    SUBMIT = 'submit'
    SAVE_DRAFT = 'save_draft'

class NavigationResult(BaseModel):
    outcome: NavigationOutcome
    page_index: int
    errors: Dict[str, str] = {}
    warning: Optional[str] = None
    reset_scroll: bool = False

    @property
    def moved(self) -> bool:
        return self.outcome == NavigationOutcome.MOVED

class ActionResult(BaseModel):
    completed: bool
    errors: Dict[str, str] = {}
    response: Any = None

class Progress(BaseModel):
    step: int
    total: int
    percent: int
    label: str

class RenderedField(BaseModel):
    id: str
    name: str
    key: str
    label: str
    type: FieldType
    value: Any = None
    error: Optional[str] = None
    required: bool = False
    disabled: bool = False
    show_label: bool = True
    placeholder: Optional[str] = None
    hint: Optional[str] = None
    content: Optional[str] = None
    options: List[OptionItem] = []
    grid_row: int = 1
    grid_column: int = 1
    column_span_classes: str = ""
    grid_style: Optional[str] = None
    section: Optional["RenderedSection"] = None
    tabs: Optional[List["RenderedPage"]] = None

class RenderedRow(BaseModel):
    index: int
    fields: List[RenderedField] = []
    can_remove: bool = False

class RenderedSection(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    kind: SectionKind = SectionKind.NORMAL
    status: SectionStatus = SectionStatus.EMPTY
    fields: List[RenderedField] = []
    rows: List[RenderedRow] = []
    can_add_row: bool = False
    add_label: Optional[str] = None
    remove_label: Optional[str] = None
    add_position: Optional[AddPosition] = None

class RenderedPage(BaseModel):
    id: str
    index: int
    title: str
    description: Optional[str] = None
    sections: List[RenderedSection] = []

class RenderedForm(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    mode: FormMode
    is_multi_page: bool
    current_page: int
    total_pages: int
    pages: List[RenderedPage] = []
    progress: Optional[Progress] = None
    actions: List[FormAction] = []
    busy: bool = False
    errors: Dict[str, str] = {}

RenderedField.model_rebuild()
RenderedSection.model_rebuild()
RenderedRow.model_rebuild()
RenderedPage.model_rebuild()
RenderedForm.model_rebuild()
