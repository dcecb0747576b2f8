"""
Data contexts give every container the same get/set/error interface over
its own slice of the answer map.

* RootContext: the top-level AnswerMap and the interpreter's error map
* NestedContext: a sub-dict stored under a section or tab field's name
* RepeaterRowContext: one row dict inside a repeater section's list

Contexts compose, so a tab nested in a repeater row writes into that row.
Error keys are qualified by the chain of containers, e.g.
"contacts.1.phone" for the phone field of row 1 of section "contacts".
"""

from typing import Any, Dict, List, Optional
from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class DataContext(ABC):
    @abstractmethod
    def get(self, name: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set(self, name: str, value: Any) -> None:
        ...

    @abstractmethod
    def key(self, name: str) -> str:
        """Fully qualified error key for a name in this context"""

    @abstractmethod
    def root(self) -> "RootContext":
        ...

    def error(self, name: str) -> Optional[str]:
        return self.root().errors.get(self.key(name))

    def set_error(self, name: str, message: str) -> None:
        self.root().errors[self.key(name)] = message

    def clear_error(self, name: str) -> None:
        self.root().errors.pop(self.key(name), None)

    def nested(self, name: str) -> "NestedContext":
        return NestedContext(self, name)

    def row(self, section_id: str, index: int) -> "RepeaterRowContext":
        return RepeaterRowContext(self, section_id, index)


class RootContext(DataContext):
    def __init__(self, answers: Dict[str, Any], errors: Optional[Dict[str, str]] = None):
        self.answers = answers
        self.errors = errors if errors is not None else {}

    def get(self, name: str, default: Any = None) -> Any:
        return self.answers.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.answers[name] = value

    def key(self, name: str) -> str:
        return name

    def root(self) -> "RootContext":
        return self


class NestedContext(DataContext):
    def __init__(self, parent: DataContext, name: str):
        self.parent = parent
        self.name = name

    def _scope(self) -> Dict[str, Any]:
        scope = self.parent.get(self.name)
        return scope if isinstance(scope, dict) else {}

    def get(self, name: str, default: Any = None) -> Any:
        return self._scope().get(name, default)

    def set(self, name: str, value: Any) -> None:
        scope = dict(self._scope())
        scope[name] = value
        self.parent.set(self.name, scope)

    def key(self, name: str) -> str:
        return self.parent.key(f"{self.name}.{name}")

    def root(self) -> RootContext:
        return self.parent.root()


class RepeaterRowContext(DataContext):
    def __init__(self, parent: DataContext, section_id: str, index: int):
        self.parent = parent
        self.section_id = section_id
        self.index = index

    def _rows(self) -> List[Dict[str, Any]]:
        rows = self.parent.get(self.section_id)
        return rows if isinstance(rows, list) else []

    def _row(self) -> Dict[str, Any]:
        rows = self._rows()
        if 0 <= self.index < len(rows) and isinstance(rows[self.index], dict):
            return rows[self.index]
        return {}

    def get(self, name: str, default: Any = None) -> Any:
        return self._row().get(name, default)

    def set(self, name: str, value: Any) -> None:
        rows = list(self._rows())
        if self.index >= len(rows):
            logger.warning("Row %s of %s does not exist; value for %s dropped",
                           self.index, self.section_id, name)
            return
        row = dict(rows[self.index] or {})
        row[name] = value
        rows[self.index] = row
        self.parent.set(self.section_id, rows)

    def key(self, name: str) -> str:
        return self.parent.key(f"{self.section_id}.{self.index}.{name}")

    def root(self) -> RootContext:
        return self.parent.root()
