"""
Field visibility and validation.

Pure functions of the schema and the answers reachable through a data
context. Errors are collected into a plain {qualified key: message} map;
nothing here raises for invalid input.

Rules run in a fixed order and the first failure wins:
required -> minLength -> maxLength -> pattern -> type-specific (email, number).
"""

from typing import Any, Dict, List, Optional
import logging
import re

from formgrid.schemas.form import (
    FieldDefinition,
    FieldType,
    NON_INPUT_TYPES,
    PageDefinition,
    SectionDefinition,
)
from formgrid.services.data_context import DataContext

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"\S+@\S+\.\S+")


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without Python's bool/int coercion (True never equals 1)"""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if type(left) != type(right) and not (
        isinstance(left, (int, float)) and isinstance(right, (int, float))
    ):
        return False
    return left == right


def is_visible(field: FieldDefinition, context: DataContext) -> bool:
    if field.depends_on is None:
        return True
    return strict_equals(context.get(field.depends_on.field), field.depends_on.value)


def is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict, tuple, set)):
        return len(value) == 0
    return False


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def validate_field(field: FieldDefinition, value: Any) -> Optional[str]:
    """
    Validate one input value.

    Args:
        field: Field definition carrying the rules
        value: Current answer

    Returns:
        The error message of the first failing rule, or None
    """
    rules = field.validation
    custom = rules.message

    if field.is_required and is_empty(value):
        return custom or f"{field.label or field.name} is required"

    if is_empty(value):
        return None

    if isinstance(value, str):
        if rules.min_length and len(value) < rules.min_length:
            return custom or f"Minimum length is {rules.min_length}"
        if rules.max_length and len(value) > rules.max_length:
            return custom or f"Maximum length is {rules.max_length}"
        if rules.pattern:
            try:
                if not re.search(rules.pattern, value):
                    return custom or "Invalid format"
            except re.error as e:
                logger.warning("Skipping invalid pattern on field %s: %s", field.name, e)

    if field.type == FieldType.EMAIL and not EMAIL_RE.search(str(value)):
        return custom or "Invalid email format"

    if field.type == FieldType.NUMBER:
        number = _to_number(value)
        if number is None:
            return custom or "Must be a valid number"
        if rules.min is not None and number < rules.min:
            return custom or f"Minimum value is {rules.min:g}"
        if rules.max is not None and number > rules.max:
            return custom or f"Maximum value is {rules.max:g}"

    return None


def validate_fields(fields: List[FieldDefinition], context: DataContext) -> Dict[str, str]:
    errors = {}
    for field in fields:
        if not is_visible(field, context):
            continue
        if field.type == FieldType.SECTION and field.section is not None:
            errors.update(validate_section(field.section, context.nested(field.name)))
        elif field.type == FieldType.TAB:
            nested = context.nested(field.name)
            for page in field.pages or []:
                errors.update(validate_page(page, nested))
        elif field.type not in NON_INPUT_TYPES:
            message = validate_field(field, context.get(field.name))
            if message:
                errors[context.key(field.name)] = message
    return errors


def row_count(section: SectionDefinition, context: DataContext) -> int:
    """Rows as displayed: stored rows, padded up to minRows"""
    rows = context.get(section.id)
    stored = len(rows) if isinstance(rows, list) else 0
    return max(stored, section.repeater_config.min_rows)


def validate_section(section: SectionDefinition, context: DataContext) -> Dict[str, str]:
    if not section.is_repeater:
        return validate_fields(section.fields, context)

    errors = {}
    for index in range(row_count(section, context)):
        errors.update(validate_fields(section.fields, context.row(section.id, index)))
    return errors


def validate_page(page: PageDefinition, context: DataContext) -> Dict[str, str]:
    errors = {}
    for section in page.sections:
        errors.update(validate_section(section, context))
    return errors


def validate_pages(pages: List[PageDefinition], context: DataContext) -> Dict[str, str]:
    errors = {}
    for page in pages:
        errors.update(validate_page(page, context))
    return errors
