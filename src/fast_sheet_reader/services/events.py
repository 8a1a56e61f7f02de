"""Lifecycle event slots for a sheet cursor.

A cursor has one optional handler per event. Handlers run synchronously,
in this order for every row: ``beforerecord``, ``cell`` (once per stored
cell), ``record``. ``start`` fires before the first row of a load and
``end`` after a full read; ``error`` receives reported errors.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

from fast_sheet_reader.utils.exceptions import UnknownEventError

EventHandler = Callable[..., Any]


class SheetEvent(str, Enum):
    """Events a sheet cursor can fire."""

    START = "start"
    CELL = "cell"
    BEFORE_RECORD = "beforerecord"
    RECORD = "record"
    END = "end"
    ERROR = "error"

    @classmethod
    def parse(cls, event: str | SheetEvent) -> SheetEvent:
        """Look up an event by name.

        Raises:
            UnknownEventError: If the name is not a cursor event.
        """
        if isinstance(event, cls):
            return event
        try:
            return cls(str(event).lower())
        except ValueError:
            raise UnknownEventError(
                str(event), supported=[e.value for e in cls]
            ) from None


class EventRegistry:
    """Holds at most one handler per SheetEvent."""

    def __init__(self) -> None:
        self._handlers: dict[SheetEvent, EventHandler] = {}

    def on(self, event: str | SheetEvent, handler: EventHandler | None) -> None:
        """Register a handler, replacing any previous one.

        Passing ``None`` clears the slot.

        Raises:
            UnknownEventError: If the event name is unknown.
            TypeError: If the handler is not callable.
        """
        key = SheetEvent.parse(event)
        if handler is None:
            self._handlers.pop(key, None)
            return
        if not callable(handler):
            raise TypeError(f"Handler for '{key.value}' is not callable")
        self._handlers[key] = handler

    def off(self, event: str | SheetEvent) -> None:
        """Remove the handler for an event, if any."""
        self._handlers.pop(SheetEvent.parse(event), None)

    def get(self, event: str | SheetEvent) -> EventHandler | None:
        return self._handlers.get(SheetEvent.parse(event))

    def has(self, event: str | SheetEvent) -> bool:
        return SheetEvent.parse(event) in self._handlers

    def fire(self, event: SheetEvent, *args: Any) -> Any:
        """Invoke the handler for an event and return its result.

        Returns None when no handler is registered.
        """
        handler = self._handlers.get(event)
        if handler is None:
            return None
        return handler(*args)

    def clear(self) -> None:
        self._handlers.clear()

    def __len__(self) -> int:
        return len(self._handlers)
