from __future__ import annotations

# Waiting lines, one FIFO deque per service type.
#
# No reordering happens here: dequeue always returns the oldest ticket of the
# requested service type. Choosing *which* service type to take from is the
# engine's job.
#
# Like the counter registry, this store is only used under the engine lock.

from collections import deque
from typing import Iterable

from .counters import CounterRegistry
from .errors import UnknownServiceType
from .models import Ticket


class QueueStore:
    def __init__(self, service_type_ids: Iterable[str], counters: CounterRegistry) -> None:
        self._queues: dict[str, deque[Ticket]] = {}
        self._waiting_numbers: set[str] = set()
        self._counters = counters
        for sid in service_type_ids:
            self.add_service_type(sid)

    def add_service_type(self, service_type_id: str) -> None:
        self._queues.setdefault(service_type_id, deque())

    def _queue(self, service_type_id: str) -> deque[Ticket]:
        try:
            return self._queues[service_type_id]
        except KeyError:
            raise UnknownServiceType(service_type_id) from None

    def enqueue(self, service_type_id: str, ticket: Ticket) -> None:
        q = self._queue(service_type_id)
        if ticket.number in self._waiting_numbers:
            raise ValueError(f"ticket {ticket.number} is already waiting")
        q.append(ticket)
        self._waiting_numbers.add(ticket.number)

    def dequeue(self, service_type_id: str) -> Ticket | None:
        q = self._queue(service_type_id)
        if not q:
            return None
        ticket = q.popleft()
        self._waiting_numbers.discard(ticket.number)
        return ticket

    def peek(self, service_type_id: str) -> Ticket | None:
        q = self._queue(service_type_id)
        return q[0] if q else None

    def length(self, service_type_id: str) -> int:
        return len(self._queue(service_type_id))

    def total_waiting(self) -> int:
        return len(self._waiting_numbers)

    def lengths(self) -> dict[str, int]:
        return {sid: len(q) for sid, q in self._queues.items()}

    def waiting(self) -> list[Ticket]:
        """All waiting tickets, grouped by service type, FIFO within each."""
        return [t for q in self._queues.values() for t in q]

    def is_waiting(self, ticket_number: str) -> bool:
        return ticket_number in self._waiting_numbers

    def is_available_for(self, service_type_id: str) -> int:
        """Number of Available counters that could take this service type."""
        self._queue(service_type_id)
        return self._counters.count_available_for(service_type_id)
