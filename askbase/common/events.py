"""
Observability Event Sink

Structured pipeline events (request, memory_merge, normalized, embedding_cache,
ranked, arbitration, resolved, pipeline_error) are pushed into an injected
sink instead of being printed behind a module-level debug switch.
"""

import logging
from typing import Any, Dict, List, Protocol, Tuple

logger = logging.getLogger("askbase.events")


class EventSink(Protocol):
    """Anything that accepts named pipeline events with keyword fields."""

    def emit(self, event: str, **fields: Any) -> None:
        ...


def _format_fields(fields: Dict[str, Any]) -> str:
    parts = []
    for key, value in fields.items():
        if isinstance(value, float):
            value = f"{value:.4f}"
        elif isinstance(value, str) and (" " in value or not value):
            value = repr(value)
        parts.append(f"{key}={value}")
    return " ".join(parts)


class LoggingEventSink:
    """Writes events as ``event key=value ...`` lines to the askbase.events logger.

    ``verbose`` promotes events from DEBUG to INFO so they show up under the
    default server log level.
    """

    def __init__(self, verbose: bool = False):
        self._level = logging.INFO if verbose else logging.DEBUG

    @property
    def verbose(self) -> bool:
        return self._level == logging.INFO

    def emit(self, event: str, **fields: Any) -> None:
        if not logger.isEnabledFor(self._level):
            return
        if fields:
            logger.log(self._level, "%s %s", event, _format_fields(fields))
        else:
            logger.log(self._level, "%s", event)


class NullEventSink:
    """Discards every event."""

    def emit(self, event: str, **fields: Any) -> None:
        return None


class RecordingEventSink:
    """Keeps events in memory, in emission order."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, event: str, **fields: Any) -> None:
        self.events.append((event, dict(fields)))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def first(self, event: str) -> Dict[str, Any]:
        """Fields of the first event with this name (KeyError if none)."""
        for name, fields in self.events:
            if name == event:
                return fields
        raise KeyError(event)

    def clear(self) -> None:
        self.events.clear()
