"""Structured generation events.

Generation stages report what they decided (lake accepted, basin rejected,
...) through an optional ``EventSink`` callable instead of logging directly,
so callers choose where diagnostics go.
"""

from dataclasses import dataclass, field
from typing import Any, Callable

import structlog


@dataclass(frozen=True)
class GenerationEvent:
    """A single named event with keyword data."""

    event: str
    data: dict[str, Any] = field(default_factory=dict)


EventSink = Callable[[GenerationEvent], None]


def emit(sink: EventSink | None, event: str, **data: Any) -> None:
    """Send an event to the sink, if there is one."""
    if sink is not None:
        sink(GenerationEvent(event=event, data=data))


class EventRecorder:
    """Sink that keeps every event in memory."""

    def __init__(self) -> None:
        self.events: list[GenerationEvent] = []

    def __call__(self, event: GenerationEvent) -> None:
        self.events.append(event)

    def named(self, name: str) -> list[GenerationEvent]:
        """Return recorded events with the given name."""
        return [e for e in self.events if e.event == name]


def structlog_sink(logger: Any = None) -> EventSink:
    """Build a sink that forwards events to structlog.

    Args:
        logger: Bound logger to use; defaults to structlog.get_logger().

    Returns:
        EventSink logging each event at debug level, lake acceptances at info.
    """
    log = logger if logger is not None else structlog.get_logger()

    def sink(event: GenerationEvent) -> None:
        if event.event == "lake_accepted":
            log.info(event.event, **event.data)
        else:
            log.debug(event.event, **event.data)

    return sink
