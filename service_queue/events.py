"""Domain events produced by the dispatch engine.

The engine only *produces* events. Whoever wants them (MQTT fan-out, tests,
a log) implements `EventSink.emit`. Delivery is fire-and-forget: by the time
an event is emitted the state change it describes has already happened.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Protocol, Union

from .models import Counter, Ticket, TicketStatus


@dataclass(frozen=True)
class TicketCreated:
    ticket: Ticket

    event_type = "ticket_created"

    @property
    def service_type_id(self) -> str:
        return self.ticket.service_type_id

    def to_message(self) -> dict[str, Any]:
        return {"type": self.event_type, "ticket": self.ticket.to_message()}


@dataclass(frozen=True)
class TicketCalled:
    ticket_number: str
    counter_number: int
    service_type_id: str

    event_type = "ticket_called"

    def to_message(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "ticket_number": self.ticket_number,
            "counter_number": self.counter_number,
            "service_type_id": self.service_type_id,
        }


@dataclass(frozen=True)
class TicketUpdated:
    ticket_number: str
    status: TicketStatus
    service_type_id: str

    event_type = "ticket_updated"

    def to_message(self) -> dict[str, Any]:
        return {
            "type": self.event_type,
            "ticket_number": self.ticket_number,
            "status": self.status.value,
            "service_type_id": self.service_type_id,
        }


@dataclass(frozen=True)
class CounterUpdated:
    counter: Counter

    event_type = "counter_updated"

    def to_message(self) -> dict[str, Any]:
        return {"type": self.event_type, "counter": self.counter.to_message()}


DomainEvent = Union[TicketCreated, TicketCalled, TicketUpdated, CounterUpdated]


class EventSink(Protocol):
    def emit(self, event: DomainEvent) -> None: ...


class NullSink:
    """Drops every event."""

    def emit(self, event: DomainEvent) -> None:
        return None


class EventRecorder:
    """In-memory sink that keeps every event, in emission order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[DomainEvent] = []

    def emit(self, event: DomainEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> list[DomainEvent]:
        with self._lock:
            return list(self._events)

    def types(self) -> list[str]:
        return [e.event_type for e in self.events]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
