from __future__ import annotations

# Plain data containers shared by the core and the MQTT layer.
#
# The engine owns the live Ticket/Counter instances. Anything handed to a
# caller is a copy made with `snapshot()`, so callers can't mutate engine state.

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any


class TicketStatus(str, Enum):
    WAITING = "waiting"
    CALLED = "called"
    SERVING = "serving"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TicketStatus.COMPLETED, TicketStatus.NO_SHOW, TicketStatus.CANCELLED)


class CounterStatus(str, Enum):
    AVAILABLE = "available"
    SERVING = "serving"
    CLOSED = "closed"
    BREAK = "break"


@dataclass(frozen=True)
class ServiceTypeDef:
    """A kind of service customers can draw a ticket for."""

    id: str
    name: str
    average_processing_minutes: int
    ticket_prefix: str
    default_priority: int = 1
    description: str = ""
    is_active: bool = True

    def to_message(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "average_processing_minutes": self.average_processing_minutes,
            "default_priority": self.default_priority,
            "ticket_prefix": self.ticket_prefix,
            "is_active": self.is_active,
        }


@dataclass
class Ticket:
    number: str
    service_type_id: str
    priority: int
    created_at: datetime
    status: TicketStatus = TicketStatus.WAITING
    counter_number: int | None = None
    # Snapshot taken at creation; never recomputed.
    estimated_wait_minutes: int = 0

    def snapshot(self) -> "Ticket":
        return replace(self)

    def to_message(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "service_type_id": self.service_type_id,
            "priority": self.priority,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
            "counter_number": self.counter_number,
            "estimated_wait_minutes": self.estimated_wait_minutes,
        }


@dataclass
class Counter:
    """A staffed counter.

    `service_types` is ordered: when calling the next ticket, earlier service
    types take precedence over later ones.
    """

    number: int
    name: str
    service_types: tuple[str, ...]
    status: CounterStatus = CounterStatus.AVAILABLE
    current_ticket: str | None = None
    current_operator: str | None = None

    def can_serve(self, service_type_id: str) -> bool:
        return service_type_id in self.service_types

    def snapshot(self) -> "Counter":
        return replace(self, service_types=tuple(self.service_types))

    def to_message(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "name": self.name,
            "status": self.status.value,
            "service_types": list(self.service_types),
            "current_ticket": self.current_ticket,
            "current_operator": self.current_operator,
        }


@dataclass(frozen=True)
class QueueSnapshot:
    """Aggregated view used for the periodic status broadcast."""

    queues: dict[str, int] = field(default_factory=dict)
    counters: tuple[Counter, ...] = ()
    taken_at: datetime | None = None

    def to_message(self) -> dict[str, Any]:
        return {
            "type": "status_update",
            "queues": dict(self.queues),
            "counters": [c.to_message() for c in self.counters],
            "ts": self.taken_at.isoformat() if self.taken_at else None,
        }
