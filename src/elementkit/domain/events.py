"""
Element lifecycle events.

The core fires these and only reads back one value: ``ElementEvent.perform_action`` on
``before_save_element``, which lets a listener veto the save.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .models import Element

EVENT_AFTER_POPULATE_ELEMENT = "after_populate_element"
EVENT_AFTER_MERGE_ELEMENTS = "after_merge_elements"
EVENT_BEFORE_DELETE_ELEMENTS = "before_delete_elements"
EVENT_BEFORE_SAVE_ELEMENT = "before_save_element"
EVENT_AFTER_SAVE_ELEMENT = "after_save_element"


@dataclass
class ElementEvent:
    element: Element
    is_new_element: bool = False
    perform_action: bool = True


@dataclass
class PopulateElementEvent:
    element: Element
    row: dict[str, Any] = field(default_factory=dict)


@dataclass
class MergeElementsEvent:
    merged_element_id: int
    prevailing_element_id: int


@dataclass
class DeleteElementsEvent:
    element_ids: list[int]


Handler = Callable[[Any], None]


class EventBus:
    """Synchronous named-event dispatcher. Handler exceptions propagate to the trigger site."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def on(self, name: str, handler: Handler) -> None:
        self._handlers[name].append(handler)

    def off(self, name: str, handler: Handler) -> None:
        if handler in self._handlers.get(name, []):
            self._handlers[name].remove(handler)

    def trigger(self, name: str, event: Any) -> None:
        for handler in list(self._handlers.get(name, [])):
            handler(event)
