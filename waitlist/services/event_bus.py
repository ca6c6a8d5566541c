"""In-process publish/subscribe channel for form events"""
from typing import Callable, Dict, Iterable, List, Tuple
import logging

from waitlist.models.events import EventKind, EventRecord

logger = logging.getLogger(__name__)

EventHandler = Callable[[EventRecord], None]
Unsubscribe = Callable[[], None]


class EventBus:
    """
    Synchronous event bus keyed by event kind.

    Handlers run in subscription order. A failing handler is logged and
    skipped; it never reaches the emitter or the handlers after it.
    """

    def __init__(self):
        # Each registration carries its own token so duplicates stay independent
        self._handlers: Dict[EventKind, List[Tuple[object, EventHandler]]] = {kind: [] for kind in EventKind}

    def subscribe(self, kind, handler: EventHandler) -> Unsubscribe:
        """
        Subscribe to an event kind

        Args:
            kind: EventKind or its string value ("view" maps to field_focus)
            handler: Called with each matching EventRecord

        Returns:
            Function that removes this subscription
        """
        kind = EventKind(kind)
        token = object()
        self._handlers[kind].append((token, handler))

        def unsubscribe() -> None:
            # Replace rather than mutate so an emit in progress keeps its snapshot
            self._handlers[kind] = [entry for entry in self._handlers[kind] if entry[0] is not token]

        return unsubscribe

    def subscribe_to_many(self, kinds: Iterable, handler: EventHandler) -> Unsubscribe:
        """Subscribe one handler to several kinds; the returned function removes all of them"""
        unsubscribers = [self.subscribe(kind, handler) for kind in kinds]

        def unsubscribe() -> None:
            for unsubscribe_one in unsubscribers:
                unsubscribe_one()

        return unsubscribe

    def emit(self, record: EventRecord) -> None:
        handlers = list(self._handlers[record.kind])
        for _, handler in handlers:
            try:
                handler(record)
            except Exception as e:
                logger.error(f"Error in event handler for {record.kind.value} event: {e}")

    def handler_count(self, kind) -> int:
        return len(self._handlers[EventKind(kind)])


# Shared instance for callers that do not construct their own
default_event_bus = EventBus()
