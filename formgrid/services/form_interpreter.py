from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union
import copy
import inspect
import logging

from formgrid.core.exceptions import ExternalOperationError
from formgrid.schemas.form import (
    AddPosition,
    FieldDefinition,
    FieldType,
    FormDefinition,
    NON_INPUT_TYPES,
    PageDefinition,
    SectionDefinition,
    normalize_option,
)
from formgrid.schemas.runtime import (
    ActionResult,
    FormAction,
    FormMode,
    NavigationOutcome,
    NavigationResult,
    Progress,
    RenderedField,
    RenderedForm,
    RenderedPage,
    RenderedRow,
    RenderedSection,
    SectionStatus,
)
from formgrid.services.data_context import DataContext, RootContext
from formgrid.services.grid import (
    grid_column_style,
    migrate_fields_to_grid,
    responsive_col_span_classes,
    sort_fields_by_grid_position,
)
from formgrid.services.schema_index import SchemaIndex
from formgrid.services.validation import (
    is_empty,
    is_visible,
    validate_page,
    validate_pages,
    validate_section,
)

logger = logging.getLogger(__name__)

AnswerCallback = Callable[[Dict[str, Any]], Union[Awaitable[Any], Any]]


class FormInterpreter:
    """
    Runs a form definition against a live answer map.

    Holds the navigation state (current page, surfaced errors, busy flag) and
    hands answers to the submit and draft collaborators. Rendering and
    validation are recomputed from schema + answers on every call.
    """

    def __init__(
        self,
        form: FormDefinition,
        initial_answers: Optional[Dict[str, Any]] = None,
        mode: Union[str, FormMode] = FormMode.CREATE,
        on_submit: Optional[AnswerCallback] = None,
        on_save_draft: Optional[AnswerCallback] = None,
    ):
        self.form = form.model_copy(deep=True)
        migrate_fields_to_grid(self.form.pages)
        self.index = SchemaIndex(self.form)
        self.mode = FormMode(mode)
        self.answers: Dict[str, Any] = copy.deepcopy(initial_answers or {})
        self.errors: Dict[str, str] = {}
        self.context = RootContext(self.answers, self.errors)
        self.current_page = 0
        self.busy = False
        self.warning: Optional[str] = None
        self._on_submit = on_submit
        self._on_save_draft = on_save_draft
        logger.info("FormInterpreter initialized for form %s in %s mode", self.form.id, self.mode.value)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def read_only(self) -> bool:
        return self.mode == FormMode.VIEW

    @property
    def is_multi_page(self) -> bool:
        return self.form.settings.multi_page and len(self.form.pages) > 1

    @property
    def total_pages(self) -> int:
        return len(self.form.pages) if self.is_multi_page else 1

    @property
    def is_first_page(self) -> bool:
        return self.current_page == 0

    @property
    def is_last_page(self) -> bool:
        return self.current_page == self.total_pages - 1

    def visible_pages(self) -> List[Tuple[int, PageDefinition]]:
        if self.is_multi_page:
            return [(self.current_page, self.form.pages[self.current_page])]
        return list(enumerate(self.form.pages))

    def load_answers(self, answers: Dict[str, Any]) -> None:
        """Replace the answer map, e.g. when an edited submission is loaded"""
        self.answers.clear()
        self.answers.update(copy.deepcopy(answers))
        self.errors.clear()

    # ------------------------------------------------------------------
    # Answers
    # ------------------------------------------------------------------
    def get_value(self, name: str, context: Optional[DataContext] = None) -> Any:
        return (context or self.context).get(name)

    def set_value(self, name: str, value: Any, context: Optional[DataContext] = None) -> bool:
        if self.read_only or self.busy:
            logger.debug("Ignoring change to %s: inputs are disabled", name)
            return False
        context = context or self.context
        context.set(name, value)
        context.clear_error(name)
        self._drop_stale_errors()
        return True

    def _drop_stale_errors(self) -> None:
        # A write can hide dependent fields; their surfaced errors go with them
        if not self.errors:
            return
        live = self.validate_all()
        for key in [k for k in self.errors if k not in live]:
            del self.errors[key]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def validate_current_page(self) -> Dict[str, str]:
        if not self.form.pages:
            return {}
        if self.is_multi_page:
            return validate_page(self.form.pages[self.current_page], self.context)
        return validate_pages(self.form.pages, self.context)

    def validate_all(self) -> Dict[str, str]:
        return validate_pages(self.form.pages, self.context)

    def _surface(self, errors: Dict[str, str]) -> None:
        # Keep the dict identity: the root context shares it
        self.errors.clear()
        self.errors.update(errors)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def _noop(self, warning: Optional[str] = None) -> NavigationResult:
        return NavigationResult(outcome=NavigationOutcome.NOOP, page_index=self.current_page, warning=warning)

    def _move_to(self, page_index: int, warning: Optional[str] = None,
                 errors: Optional[Dict[str, str]] = None) -> NavigationResult:
        self.current_page = page_index
        self._surface({})
        self.warning = warning
        return NavigationResult(
            outcome=NavigationOutcome.MOVED,
            page_index=page_index,
            errors=errors or {},
            warning=warning,
            reset_scroll=True,
        )

    def _block(self, errors: Dict[str, str], warning: Optional[str] = None) -> NavigationResult:
        self._surface(errors)
        return NavigationResult(
            outcome=NavigationOutcome.BLOCKED,
            page_index=self.current_page,
            errors=errors,
            warning=warning,
        )

    def next(self) -> NavigationResult:
        if self.read_only or not self.is_multi_page or self.is_last_page:
            return self._noop()

        errors = self.validate_current_page()
        if errors:
            logger.info("Next blocked on page %s: %s error(s)", self.current_page, len(errors))
            return self._block(errors)

        logger.info("Moving to page %s", self.current_page + 1)
        return self._move_to(self.current_page + 1)

    def previous(self) -> NavigationResult:
        """Going back is always allowed; open errors only come back as a warning"""
        if self.read_only or not self.is_multi_page or self.is_first_page:
            return self._noop()

        errors = self.validate_current_page()
        warning = None
        if errors:
            warning = f"Page {self.current_page + 1} has {len(errors)} unresolved error(s)"
            logger.info("Leaving page %s with %s error(s)", self.current_page, len(errors))
        return self._move_to(self.current_page - 1, warning=warning, errors=errors)

    def switch_tab(self, target: int) -> NavigationResult:
        if target == self.current_page:
            return self._noop()
        if not 0 <= target < self.total_pages:
            logger.warning("Tab switch to unknown page %s ignored", target)
            return self._noop(warning=f"Page {target + 1} does not exist")

        if not self.read_only:
            errors = self.validate_current_page()
            if errors:
                logger.info("Tab switch to %s blocked: %s error(s)", target, len(errors))
                return self._block(errors, warning="Fix the errors on this page before switching tabs")

        logger.info("Switching to page %s", target)
        return self._move_to(target)

    # ------------------------------------------------------------------
    # External operations
    # ------------------------------------------------------------------
    async def _call(self, operation: str, callback: AnswerCallback) -> Any:
        self.busy = True
        try:
            result = callback(copy.deepcopy(self.answers))
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            logger.error("%s failed: %s", operation, str(e))
            raise ExternalOperationError(operation, e) from e
        finally:
            self.busy = False

    async def submit(self) -> ActionResult:
        if self.read_only or self.busy:
            return ActionResult(completed=False)
        if self._on_submit is None:
            logger.warning("Submit ignored: no submit handler configured")
            return ActionResult(completed=False)
        if self.is_multi_page and not self.is_last_page:
            logger.warning("Submit ignored: page %s is not the last page", self.current_page)
            return ActionResult(completed=False)

        errors = self.validate_all()
        if errors:
            logger.info("Submit blocked: %s error(s)", len(errors))
            self._surface(errors)
            return ActionResult(completed=False, errors=errors)

        logger.info("Submitting form %s", self.form.id)
        response = await self._call("submit", self._on_submit)
        return ActionResult(completed=True, response=response)

    async def save_draft(self) -> ActionResult:
        """Hand the answers over as they are; drafts skip validation"""
        if self.read_only or self.busy:
            return ActionResult(completed=False)
        if self._on_save_draft is None or not self.form.settings.allow_save_draft:
            logger.warning("Save draft ignored: drafts are not enabled")
            return ActionResult(completed=False)

        logger.info("Saving draft of form %s", self.form.id)
        response = await self._call("save_draft", self._on_save_draft)
        return ActionResult(completed=True, response=response)

    # ------------------------------------------------------------------
    # Repeaters
    # ------------------------------------------------------------------
    def repeater_rows(self, section: SectionDefinition, context: Optional[DataContext] = None) -> List[Dict[str, Any]]:
        """Rows of a repeater, padded with blank rows up to minRows (written back)"""
        context = context or self.context
        stored = context.get(section.id)
        rows = list(stored) if isinstance(stored, list) else []
        missing = section.repeater_config.min_rows - len(rows)
        if missing > 0:
            rows.extend({} for _ in range(missing))
            context.set(section.id, rows)
        return rows

    def add_row(self, section_id: str, context: Optional[DataContext] = None) -> bool:
        section = self.index.section(section_id)
        if not section.is_repeater or self.read_only:
            return False
        context = context or self.context
        rows = self.repeater_rows(section, context)
        config = section.repeater_config
        if len(rows) >= config.max_rows:
            logger.info("Repeater %s already has the maximum of %s rows", section_id, config.max_rows)
            return False

        if config.add_position == AddPosition.TOP:
            rows.insert(0, {})
            self._clear_row_errors(section, context)
        else:
            rows.append({})
        context.set(section.id, rows)
        return True

    def remove_row(self, section_id: str, index: int, context: Optional[DataContext] = None) -> bool:
        section = self.index.section(section_id)
        if not section.is_repeater or self.read_only:
            return False
        context = context or self.context
        rows = self.repeater_rows(section, context)
        if len(rows) <= section.repeater_config.min_rows:
            logger.info("Repeater %s is at its minimum of %s rows", section_id, section.repeater_config.min_rows)
            return False
        if not 0 <= index < len(rows):
            return False

        rows.pop(index)
        context.set(section.id, rows)
        self._clear_row_errors(section, context)
        return True

    def _clear_row_errors(self, section: SectionDefinition, context: DataContext) -> None:
        # Row indices shifted; stale keys would point at the wrong row
        prefix = context.key(section.id) + "."
        for key in [k for k in self.errors if k.startswith(prefix)]:
            del self.errors[key]

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def progress(self) -> Optional[Progress]:
        if not self.is_multi_page or not self.form.settings.show_progress_bar:
            return None
        step = self.current_page + 1
        return Progress(
            step=step,
            total=self.total_pages,
            percent=round(step / self.total_pages * 100),
            label=f"Step {step} of {self.total_pages}",
        )

    def actions(self) -> List[FormAction]:
        if self.read_only:
            return []
        actions = []
        if self.is_multi_page and not self.is_first_page:
            actions.append(FormAction.PREVIOUS)
        if self.is_multi_page and not self.is_last_page:
            actions.append(FormAction.NEXT)
        elif self._on_submit is not None:
            actions.append(FormAction.SUBMIT)
        if self.form.settings.allow_save_draft and self._on_save_draft is not None:
            actions.append(FormAction.SAVE_DRAFT)
        return actions

    def section_status(self, section: SectionDefinition, context: Optional[DataContext] = None) -> SectionStatus:
        context = context or self.context
        errors = validate_section(section, context)
        if any(key in self.errors for key in errors):
            return SectionStatus.ERROR
        if not any(not is_empty(value) for value in self._section_values(section, context)):
            return SectionStatus.EMPTY
        return SectionStatus.ERROR if errors else SectionStatus.VALID

    def _section_values(self, section: SectionDefinition, context: DataContext) -> Iterable[Any]:
        if section.is_repeater:
            stored = context.get(section.id)
            for index in range(len(stored) if isinstance(stored, list) else 0):
                yield from self._field_values(section.fields, context.row(section.id, index))
        else:
            yield from self._field_values(section.fields, context)

    def _field_values(self, fields: List[FieldDefinition], context: DataContext) -> Iterable[Any]:
        for field in fields:
            if field.type == FieldType.SECTION and field.section is not None:
                yield from self._section_values(field.section, context.nested(field.name))
            elif field.type == FieldType.TAB:
                nested = context.nested(field.name)
                for page in field.pages or []:
                    for section in page.sections:
                        yield from self._section_values(section, nested)
            elif field.type not in NON_INPUT_TYPES:
                yield context.get(field.name)

    def render(self) -> RenderedForm:
        return RenderedForm(
            id=self.form.id,
            title=self.form.title,
            description=self.form.description,
            mode=self.mode,
            is_multi_page=self.is_multi_page,
            current_page=self.current_page,
            total_pages=self.total_pages,
            pages=[self._render_page(index, page, self.context) for index, page in self.visible_pages()],
            progress=self.progress(),
            actions=self.actions(),
            busy=self.busy,
            errors=dict(self.errors),
        )

    def _render_page(self, index: int, page: PageDefinition, context: DataContext) -> RenderedPage:
        return RenderedPage(
            id=page.id,
            index=index,
            title=page.title,
            description=page.description,
            sections=[self._render_section(section, context) for section in page.sections],
        )

    def _render_section(self, section: SectionDefinition, context: DataContext) -> RenderedSection:
        rendered = RenderedSection(
            id=section.id,
            title=section.title,
            description=section.description,
            kind=section.kind,
            status=self.section_status(section, context),
        )
        if not section.is_repeater:
            rendered.fields = self._render_fields(section.fields, context)
            return rendered

        config = section.repeater_config
        rows = self.repeater_rows(section, context)
        rendered.rows = [
            RenderedRow(
                index=index,
                fields=self._render_fields(section.fields, context.row(section.id, index)),
                can_remove=not self.read_only and len(rows) > config.min_rows,
            )
            for index in range(len(rows))
        ]
        rendered.can_add_row = not self.read_only and len(rows) < config.max_rows
        rendered.add_label = config.add_label
        rendered.remove_label = config.remove_label
        rendered.add_position = config.add_position
        return rendered

    def _render_fields(self, fields: List[FieldDefinition], context: DataContext) -> List[RenderedField]:
        return [
            self._render_field(field, context)
            for field in sort_fields_by_grid_position(fields)
            if is_visible(field, context)
        ]

    def _render_field(self, field: FieldDefinition, context: DataContext) -> RenderedField:
        rendered = RenderedField(
            id=field.id,
            name=field.name,
            key=context.key(field.name),
            label=field.label,
            type=field.type,
            value=None if field.type in NON_INPUT_TYPES else context.get(field.name),
            error=context.error(field.name),
            required=field.is_required,
            disabled=self.read_only or self.busy,
            show_label=field.show_label,
            placeholder=field.placeholder,
            hint=field.hint,
            content=field.content,
            options=[normalize_option(option) for option in field.options],
            grid_row=field.grid_row or 1,
            grid_column=field.grid_column or 1,
            column_span_classes=responsive_col_span_classes(field.column_span),
            grid_style=grid_column_style(field.column_span, field.grid_column),
        )
        if field.type == FieldType.SECTION and field.section is not None:
            rendered.section = self._render_section(field.section, context.nested(field.name))
        elif field.type == FieldType.TAB:
            nested = context.nested(field.name)
            rendered.tabs = [self._render_page(index, page, nested) for index, page in enumerate(field.pages or [])]
        return rendered
