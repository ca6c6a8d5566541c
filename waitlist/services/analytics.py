"""Forward form events to analytics sinks"""
from typing import Any, Callable, Dict, List, Optional
import logging

from waitlist.models.events import EventKind, EventRecord
from waitlist.models.forms import AnalyticsConfig
from waitlist.services.event_bus import EventBus

logger = logging.getLogger(__name__)

AnalyticsSink = Callable[[str, Dict[str, Any]], None]


def event_properties(record: EventRecord) -> Dict[str, Any]:
    """Flatten a record into analytics properties (no raw form values)"""
    properties: Dict[str, Any] = {"timestamp": record.timestamp.isoformat()}
    if record.field:
        properties["field"] = record.field
    if record.form_data is not None:
        properties["fields"] = sorted(record.form_data)
    if record.error:
        properties["message"] = record.error.message
        if record.error.code:
            properties["code"] = record.error.code
    if record.security_type:
        properties["security_type"] = record.security_type
    return properties


class AnalyticsTracker:
    """Subscribes to an event bus and relays tracked events to each sink"""

    def __init__(self, bus: EventBus, config: Optional[AnalyticsConfig] = None, sinks: Optional[Dict[str, AnalyticsSink]] = None):
        self.config = config or AnalyticsConfig()
        self.sinks = dict(sinks or {})
        self._unsubscribe: Optional[Callable[[], None]] = None

        if self.config.enabled and self.sinks:
            kinds: List[EventKind] = list(self.config.track_events or EventKind)
            self._unsubscribe = bus.subscribe_to_many(kinds, self.track)

    def track(self, record: EventRecord) -> None:
        properties = event_properties(record)
        for name, sink in self.sinks.items():
            try:
                sink(record.kind.value, properties)
            except Exception as e:
                logger.error(f"Analytics sink {name} failed for {record.kind.value}: {e}")

    def close(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
