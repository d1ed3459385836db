"""
Notification bus used to sequence selection changes and redraws.

Listeners are plain callables registered per event name. ``fire`` calls them
synchronously, in registration order, after the state mutation that caused
the notification has completed. Exceptions raised by a listener propagate
to the code that fired the event.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List


logger = logging.getLogger(__name__)


# Fires when the user selects a single epoch or an epoch range (payload: timeline id)
EPOCH_SELECTED = "eventEpochSelected"
# Fires when a confusion matrix cell was selected
CELL_SELECTED = "eventCellSelected"
# Fires when the detail view should be cleared
CLEAR_DETAIL_VIEW = "clearDetailView"
# Fires when a dataset was added to / removed from the selection (payload: dataset)
DATASET_ADDED = "eventDataSetAdded"
DATASET_REMOVED = "eventDataSetRemoved"
# Fires when every view should be recomputed
REDRAW = "eventRedraw"


Listener = Callable[..., Any]


class EventBus:
    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def off(self, event: str, listener: Listener) -> None:
        """Remove ``listener``; unknown listeners are ignored."""
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def fire(self, event: str, *args: Any) -> None:
        listeners = list(self._listeners.get(event, []))
        logger.debug("Firing %s to %d listener(s)", event, len(listeners))
        for listener in listeners:
            listener(*args)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))
