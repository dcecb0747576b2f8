"""
Pointer gestures driving the layout engine.

A gesture goes Idle -> Active -> Idle. While active it holds a pointer-move
subscription and a cursor/selection override; both are released on every
exit path, including abort() for lost focus or escape.
"""

from typing import Callable, List, Optional, Union
from enum import Enum
import logging

from formgrid.services.layout_engine import (
    GridLayoutEngine,
    MoveTarget,
    ResizeEdge,
)
from formgrid.services.grid import field_span

logger = logging.getLogger(__name__)

PointerHandler = Callable[[float, float], None]


class GestureState(str, Enum):
    IDLE = 'idle'
    ACTIVE = 'active'


class GestureKind(str, Enum):
    RESIZE = 'resize'
    DRAG = 'drag'


class PointerEventHub:
    """Minimal pointer-move notification source"""

    def __init__(self):
        self._handlers: List[PointerHandler] = []

    def subscribe(self, handler: PointerHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe():
            if handler in self._handlers:
                self._handlers.remove(handler)
        return unsubscribe

    def emit_move(self, x: float, y: float = 0.0) -> None:
        for handler in list(self._handlers):
            handler(x, y)

    @property
    def listener_count(self) -> int:
        return len(self._handlers)


class CursorOverride:
    """Global cursor and text-selection override held during a gesture"""

    def __init__(self):
        self.cursor: Optional[str] = None
        self.selection_disabled = False

    def apply(self, cursor: str) -> None:
        self.cursor = cursor
        self.selection_disabled = True

    def release(self) -> None:
        self.cursor = None
        self.selection_disabled = False

    @property
    def active(self) -> bool:
        return self.cursor is not None


class GestureController:
    def __init__(self, engine: GridLayoutEngine, pointer_events: PointerEventHub,
                 cursor: Optional[CursorOverride] = None):
        self.engine = engine
        self.pointer_events = pointer_events
        self.cursor = cursor or CursorOverride()
        self.state = GestureState.IDLE
        self.kind: Optional[GestureKind] = None
        self.field_id: Optional[str] = None
        self.section_id: Optional[str] = None
        self.edge: Optional[ResizeEdge] = None
        self._start_x = 0.0
        self._start_span = 0
        self._column_width = 1.0
        self._requested_span: Optional[int] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def active(self) -> bool:
        return self.state == GestureState.ACTIVE

    def begin_resize(self, section_id: str, field_id: str, edge: Union[str, ResizeEdge],
                     start_x: float, column_width: float) -> bool:
        if self.active:
            logger.warning("Gesture already active; resize of %s ignored", field_id)
            return False
        if column_width <= 0:
            raise ValueError("column_width must be positive")

        field = self.engine.index.field(field_id)
        self.engine.begin_resize(field_id)
        self.kind = GestureKind.RESIZE
        self.section_id = section_id
        self.field_id = field_id
        self.edge = ResizeEdge(edge)
        self._start_x = start_x
        self._start_span = field_span(field)
        self._column_width = column_width
        self._requested_span = None
        self._activate("ew-resize")
        return True

    def begin_drag(self, field_id: str) -> bool:
        if self.active:
            logger.warning("Gesture already active; drag of %s ignored", field_id)
            return False
        self.engine.index.field(field_id)
        self.kind = GestureKind.DRAG
        self.field_id = field_id
        self.section_id = self.engine.index.section_of(field_id).id
        self._activate("grabbing")
        return True

    def _activate(self, cursor: str) -> None:
        self._unsubscribe = self.pointer_events.subscribe(self._on_pointer_move)
        self.cursor.apply(cursor)
        self.state = GestureState.ACTIVE
        logger.debug("%s gesture started on field %s", self.kind.value, self.field_id)

    def _on_pointer_move(self, x: float, y: float) -> None:
        if self.kind != GestureKind.RESIZE:
            return
        delta = round((x - self._start_x) / self._column_width)
        # Dragging the left edge leftwards grows the field
        if self.edge == ResizeEdge.LEFT:
            delta = -delta
        requested = max(1, self._start_span + delta)
        if requested == self._requested_span:
            return
        self._requested_span = requested
        self.engine.resize_field(self.section_id, self.field_id, self.edge, requested, live=True)

    def finish(self, target: Optional[MoveTarget] = None) -> bool:
        """Pointer released: commit the gesture"""
        if not self.active:
            return False
        try:
            if self.kind == GestureKind.RESIZE:
                requested = self._requested_span or self._start_span
                self.engine.resize_field(self.section_id, self.field_id, self.edge, requested, live=False)
                return True
            if target is None:
                return False
            return self.engine.move_field(self.field_id, target)
        finally:
            self._release()

    def abort(self) -> None:
        """Gesture ended abnormally: roll back live changes and release everything"""
        if not self.active:
            return
        try:
            if self.kind == GestureKind.RESIZE:
                self.engine.restore_geometry(self.field_id)
        finally:
            self._release()

    def _release(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.cursor.release()
        logger.debug("Gesture on field %s released", self.field_id)
        self.state = GestureState.IDLE
        self.kind = None
        self.field_id = None
        self.section_id = None
        self.edge = None
        self._requested_span = None
