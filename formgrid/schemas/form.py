from pydantic import BaseModel, Field, AliasChoices, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any, Union
from enum import Enum
from uuid import uuid4

GRID_COLUMNS = 12


def new_id() -> str:
    return str(uuid4())


class FieldType(str, Enum):
    TEXT = 'text'
    EMAIL = 'email'
    NUMBER = 'number'
    TEL = 'tel'
    DATE = 'date'
    TEXTAREA = 'textarea'
    SELECT = 'select'
    CHECKBOX = 'checkbox'
    RADIO = 'radio'
    CHECKBOX_GROUP = 'checkbox_group'
    RADIO_GROUP = 'radio_group'
    INFO = 'info'
    SECTION = 'section'
    TAB = 'tab'

CHOICE_TYPES = {FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX_GROUP, FieldType.RADIO_GROUP}
CONTAINER_TYPES = {FieldType.SECTION, FieldType.TAB}
NON_INPUT_TYPES = {FieldType.INFO, FieldType.SECTION, FieldType.TAB}

class SectionKind(str, Enum):
    NORMAL = 'normal'
    REPEATER = 'repeater'

class AddPosition(str, Enum):
    TOP = 'top'
    BOTTOM = 'bottom'


class SchemaModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"  # presentation extras (fontSize, fontColor...) travel verbatim


class ResponsiveSpan(SchemaModel):
    mobile: int = 12
    tablet: int = 6
    desktop: int = 4

class OptionItem(SchemaModel):
    value: Any
    label: str

class DependsOn(SchemaModel):
    field: str
    value: Any = None

class ValidationRules(SchemaModel):
    required: Optional[bool] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    message: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None

class RepeaterConfig(SchemaModel):
    min_rows: int = 1
    max_rows: int = 10
    add_label: str = "Add New"
    remove_label: str = "Remove"
    add_position: AddPosition = Field(
        default=AddPosition.BOTTOM,
        validation_alias=AliasChoices("addPosition", "addButtonPosition", "add_position"),
    )

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.min_rows < 0:
            self.min_rows = 0
        if self.max_rows < max(self.min_rows, 1):
            self.max_rows = max(self.min_rows, 1)
        return self


def normalize_option(option: Union[str, OptionItem, Dict[str, Any]]) -> OptionItem:
    """Options are stored either as bare strings or as value/label pairs"""
    if isinstance(option, OptionItem):
        return option
    if isinstance(option, dict):
        value = option.get("value", option.get("label", ""))
        label = option.get("label") or str(value)
        return OptionItem(value=value, label=label)
    return OptionItem(value=option, label=str(option))


class FieldDefinition(SchemaModel):
    id: str = Field(default_factory=new_id)
    name: str = ""
    label: str = ""
    type: FieldType = FieldType.TEXT
    required: bool = False
    placeholder: Optional[str] = None
    hint: Optional[str] = None
    options: List[Union[str, OptionItem]] = []
    validation: ValidationRules = Field(default_factory=ValidationRules)
    column_span: Optional[Union[int, ResponsiveSpan]] = None
    grid_row: Optional[int] = None
    grid_column: Optional[int] = None
    depends_on: Optional[DependsOn] = None

    # Containers
    section: Optional["SectionDefinition"] = None
    pages: Optional[List["PageDefinition"]] = None

    # Presentation
    rows: Optional[int] = None
    content: Optional[str] = None
    show_label: bool = True
    orientation: Optional[str] = None
    multi_select: bool = False
    searchable: bool = False

    @model_validator(mode="before")
    @classmethod
    def _lift_legacy_containers(cls, data: Any) -> Any:
        # Older nested sections kept their fields on the field itself
        if isinstance(data, dict) and data.get("type") == FieldType.SECTION.value:
            if "section" not in data and "fields" in data:
                data = dict(data)
                data["section"] = {
                    "title": data.get("title") or data.get("label", ""),
                    "description": data.get("description", ""),
                    "type": data.pop("sectionType", "normal"),
                    "repeaterConfig": data.pop("repeaterConfig", None),
                    "fields": data.pop("fields"),
                }
        return data

    @field_validator("column_span")
    @classmethod
    def _check_span(cls, value):
        if isinstance(value, int) and not 1 <= value <= GRID_COLUMNS:
            raise ValueError(f"columnSpan must be between 1 and {GRID_COLUMNS}")
        return value

    @field_validator("grid_row")
    @classmethod
    def _check_row(cls, value):
        if value is not None and value < 1:
            raise ValueError("gridRow must be >= 1")
        return value

    @field_validator("grid_column")
    @classmethod
    def _check_column(cls, value):
        if value is not None and not 1 <= value <= GRID_COLUMNS:
            raise ValueError(f"gridColumn must be between 1 and {GRID_COLUMNS}")
        return value

    @model_validator(mode="after")
    def _fill_defaults(self):
        if not self.name:
            self.name = f"field_{self.id.replace('-', '')[:8]}"
        if self.type == FieldType.SECTION and self.section is None:
            self.section = SectionDefinition(title=self.label)
        if self.type == FieldType.TAB and self.pages is None:
            self.pages = []
        return self

    @property
    def is_required(self) -> bool:
        return bool(self.required or self.validation.required)

    @property
    def is_container(self) -> bool:
        return self.type in CONTAINER_TYPES


class SectionDefinition(SchemaModel):
    id: str = Field(default_factory=new_id)
    title: str = ""
    description: Optional[str] = ""
    kind: SectionKind = Field(
        default=SectionKind.NORMAL,
        validation_alias=AliasChoices("kind", "type"),
    )
    repeater_config: Optional[RepeaterConfig] = None
    fields: List[FieldDefinition] = []

    @field_validator("kind", mode="before")
    @classmethod
    def _legacy_kind(cls, value):
        if value in (None, "", "regular"):
            return SectionKind.NORMAL
        return value

    @model_validator(mode="after")
    def _fill_repeater_config(self):
        if self.kind == SectionKind.REPEATER and self.repeater_config is None:
            self.repeater_config = RepeaterConfig()
        return self

    @property
    def is_repeater(self) -> bool:
        return self.kind == SectionKind.REPEATER


class PageDefinition(SchemaModel):
    id: str = Field(default_factory=new_id)
    title: str = ""
    description: Optional[str] = ""
    sections: List[SectionDefinition] = []


class FormSettings(SchemaModel):
    multi_page: bool = False
    show_progress_bar: bool = True
    allow_save_draft: bool = True


class FormDefinition(SchemaModel):
    id: str = Field(default_factory=new_id)
    title: str = ""
    description: Optional[str] = ""
    pages: List[PageDefinition] = []
    settings: FormSettings = Field(default_factory=FormSettings)
    published: bool = False

    @model_validator(mode="before")
    @classmethod
    def _wrap_legacy_sections(cls, data: Any) -> Any:
        # Forms saved before pages existed carry a flat section list
        if isinstance(data, dict) and "pages" not in data and "sections" in data:
            data = dict(data)
            data["pages"] = [{"title": "Page 1", "sections": data.pop("sections")}]
        return data

    def to_tree(self) -> Dict[str, Any]:
        """Plain serializable tree handed to external save actions"""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


FieldDefinition.model_rebuild()
SectionDefinition.model_rebuild()
PageDefinition.model_rebuild()
FormDefinition.model_rebuild()
