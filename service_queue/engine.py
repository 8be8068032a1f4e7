from __future__ import annotations

# The dispatch engine is the *authoritative brain* of the system.
#
# It owns the queues, the counters, the ticket sequencer and the set of tickets
# currently at a counter, and it guards all of them with ONE lock. Every public
# operation runs entirely under that lock, so operations are linearizable: two
# counters calling at the same time can never receive the same ticket, and no
# caller ever sees a ticket marked called while its counter is still available.
#
# Events are emitted while the lock is still held (after the state change is
# complete) so sinks observe them in the same order the operations happened.
# A sink that raises is logged and ignored; it never undoes a state change.
# Sinks that do real I/O should be wrapped in `notifier.QueuedEventSink`.

import logging
import threading
from typing import Iterable

from .catalog import ServiceCatalog
from .counters import CounterRegistry
from .errors import CounterNotAvailable, TicketNotAtAnyCounter
from .events import (
    CounterUpdated,
    DomainEvent,
    EventSink,
    NullSink,
    TicketCalled,
    TicketCreated,
    TicketUpdated,
)
from .models import Counter, CounterStatus, QueueSnapshot, ServiceTypeDef, Ticket, TicketStatus
from .queue_store import QueueStore
from .sequencer import Clock, TicketSequencer, local_now

logger = logging.getLogger(__name__)


def estimate_wait_minutes(queue_length: int, average_minutes: int, available_counters: int) -> int:
    """ceil(queue_length * average_minutes / max(1, available_counters))."""
    work = queue_length * average_minutes
    counters = max(1, available_counters)
    return -(-work // counters)


class DispatchEngine:
    """Ticket admission, counter calls and completion (testable without MQTT)."""

    def __init__(
        self,
        catalog: ServiceCatalog,
        counters: Iterable[Counter],
        *,
        sink: EventSink | None = None,
        clock: Clock = local_now,
    ) -> None:
        self._lock = threading.Lock()
        self._catalog = catalog
        self._clock = clock
        self._sink: EventSink = sink if sink is not None else NullSink()

        self._counters = CounterRegistry(counters)
        for c in self._counters.list_all():
            for sid in c.service_types:
                if sid not in catalog:
                    raise ValueError(f"counter {c.number} refers to unknown service type {sid!r}")

        self._queues = QueueStore((st.id for st in catalog.list_all()), self._counters)
        self._sequencer = TicketSequencer(clock)

        # Tickets that left the queue but haven't reached a terminal status.
        self._at_counter: dict[str, Ticket] = {}

    @property
    def catalog(self) -> ServiceCatalog:
        return self._catalog

    def _emit(self, *events: DomainEvent) -> None:
        for event in events:
            try:
                self._sink.emit(event)
            except Exception:
                logger.exception("event sink failed for %s", event.event_type)

    # -------------------- commands --------------------

    def create_ticket(self, service_type_id: str) -> Ticket:
        """Draw a new ticket and put it at the back of its service queue.

        Raises `UnknownServiceType` for unknown or inactive service types.
        """
        with self._lock:
            st = self._catalog.get_active(service_type_id)
            wait = self._estimate_locked(st)
            ticket = Ticket(
                number=self._sequencer.next(st.ticket_prefix),
                service_type_id=st.id,
                priority=st.default_priority,
                created_at=self._clock(),
                status=TicketStatus.WAITING,
                estimated_wait_minutes=wait,
            )
            self._queues.enqueue(st.id, ticket)
            logger.info("ticket %s created for %s (est. wait %d min)", ticket.number, st.id, wait)

            result = ticket.snapshot()
            self._emit(TicketCreated(result.snapshot()))
            return result

    def call_next(self, counter_number: int) -> Ticket | None:
        """Assign the next eligible ticket to a counter.

        The counter's service types are tried in their configured order and
        the head of the first non-empty queue wins. Returns None when every
        eligible queue is empty; the counter then stays available.

        Raises `UnknownCounter`, or `CounterNotAvailable` if the counter is
        not available (nothing is dequeued in that case).
        """
        with self._lock:
            counter = self._counters.get(counter_number)
            if counter.status != CounterStatus.AVAILABLE:
                raise CounterNotAvailable(counter_number, counter.status.value)

            ticket: Ticket | None = None
            for sid in counter.service_types:
                ticket = self._queues.dequeue(sid)
                if ticket is not None:
                    break
            if ticket is None:
                return None

            ticket.status = TicketStatus.CALLED
            ticket.counter_number = counter_number
            self._counters.set_serving(counter_number, ticket.number)
            self._at_counter[ticket.number] = ticket
            logger.info("ticket %s called to counter %d", ticket.number, counter_number)

            self._emit(
                TicketCalled(ticket.number, counter_number, ticket.service_type_id),
                CounterUpdated(counter.snapshot()),
            )
            return ticket.snapshot()

    def complete_service(self, ticket_number: str) -> None:
        """Finish serving a ticket and free its counter.

        Raises `TicketNotAtAnyCounter` if no counter currently holds the
        ticket; nothing changes in that case.
        """
        with self._lock:
            counter = self._counters.find_by_ticket(ticket_number)
            if counter is None:
                raise TicketNotAtAnyCounter(ticket_number)

            self._counters.set_available(counter.number)
            ticket = self._at_counter.pop(ticket_number, None)
            service_type_id = ""
            if ticket is not None:
                ticket.status = TicketStatus.COMPLETED
                service_type_id = ticket.service_type_id
            logger.info("ticket %s completed at counter %d", ticket_number, counter.number)

            self._emit(
                TicketUpdated(ticket_number, TicketStatus.COMPLETED, service_type_id),
                CounterUpdated(counter.snapshot()),
            )

    def set_counter_status(self, counter_number: int, status: CounterStatus) -> Counter:
        """Open, close or pause a counter. Refused while it is serving."""
        with self._lock:
            counter = self._counters.set_status(counter_number, status)
            logger.info("counter %d is now %s", counter_number, status.value)
            result = counter.snapshot()
            self._emit(CounterUpdated(result.snapshot()))
            return result

    # -------------------- queries --------------------

    def _estimate_locked(self, st: ServiceTypeDef) -> int:
        return estimate_wait_minutes(
            self._queues.length(st.id),
            st.average_processing_minutes,
            self._queues.is_available_for(st.id),
        )

    def estimate_wait(self, service_type_id: str) -> int:
        """Minutes a ticket drawn now would be expected to wait."""
        with self._lock:
            return self._estimate_locked(self._catalog.get_active(service_type_id))

    def list_waiting_tickets(self) -> list[Ticket]:
        with self._lock:
            return [t.snapshot() for t in self._queues.waiting()]

    def list_called_tickets(self) -> list[Ticket]:
        with self._lock:
            return [t.snapshot() for t in self._at_counter.values()]

    def list_counters(self) -> list[Counter]:
        with self._lock:
            return [c.snapshot() for c in self._counters.list_all()]

    def get_counter(self, counter_number: int) -> Counter:
        with self._lock:
            return self._counters.get(counter_number).snapshot()

    def list_service_types(self) -> list[ServiceTypeDef]:
        return list(self._catalog.list_active())

    def queue_length(self, service_type_id: str) -> int:
        with self._lock:
            return self._queues.length(service_type_id)

    def snapshot(self) -> QueueSnapshot:
        with self._lock:
            return QueueSnapshot(
                queues=self._queues.lengths(),
                counters=tuple(c.snapshot() for c in self._counters.list_all()),
                taken_at=self._clock(),
            )
