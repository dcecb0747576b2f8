"""
Error taxonomy for the layout engine and the runtime interpreter.

Structural and naming errors never leave the engine: they are raised by the
placement helpers and resolved locally by clamping, rejecting or suffixing.
Validation problems are plain strings in an error map and are never raised.
Only collaborator failures cross the boundary, as ExternalOperationError.
"""

from typing import Optional


class StructuralPlacementError(Exception):
    """A placement would break the 12-column grid"""

    def __init__(self, field_id: str, message: str):
        self.field_id = field_id
        self.message = message
        super().__init__(f"Invalid placement for field '{field_id}': {message}")


class NamingCollisionError(Exception):
    """A field name is already used inside the same section"""

    def __init__(self, name: str, section_id: Optional[str] = None):
        self.name = name
        self.section_id = section_id
        super().__init__(f"Field name '{name}' already exists in section '{section_id}'")


class NodeNotFoundError(KeyError):
    """No page, section or field with the given id"""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(node_id)

    def __str__(self) -> str:
        return f"Node not found: {self.node_id}"


class FormSaveError(Exception):
    """The form cannot be handed to the save action yet"""


class ExternalOperationError(Exception):
    """A submit, draft or save collaborator failed"""

    def __init__(self, operation: str, cause: BaseException):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")
