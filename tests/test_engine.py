import threading

import pytest

from service_queue.catalog import ServiceCatalog
from service_queue.engine import DispatchEngine, estimate_wait_minutes
from service_queue.errors import (
    CounterNotAvailable,
    InvalidStateError,
    TicketNotAtAnyCounter,
    UnknownCounter,
    UnknownServiceType,
)
from service_queue.events import CounterUpdated, TicketCalled, TicketCreated, TicketUpdated
from service_queue.models import Counter, CounterStatus, ServiceTypeDef, TicketStatus


def test_create_call_complete_scenario(clock, recorder):
    catalog = ServiceCatalog(
        [
            ServiceTypeDef(id="general", name="General", average_processing_minutes=10, ticket_prefix="A"),
            ServiceTypeDef(id="vip", name="VIP", average_processing_minutes=15, ticket_prefix="V"),
        ]
    )
    engine = DispatchEngine(
        catalog, [Counter(number=1, name="C1", service_types=("general",))], sink=recorder, clock=clock
    )

    ticket = engine.create_ticket("general")
    assert ticket.number == "A261019001"
    assert ticket.status == TicketStatus.WAITING
    assert ticket.estimated_wait_minutes == 0
    assert ticket.priority == 1

    called = engine.call_next(1)
    assert called is not None
    assert called.number == ticket.number
    assert called.status == TicketStatus.CALLED
    assert called.counter_number == 1
    c1 = engine.get_counter(1)
    assert c1.status == CounterStatus.SERVING
    assert c1.current_ticket == ticket.number

    engine.complete_service(ticket.number)
    c1 = engine.get_counter(1)
    assert c1.status == CounterStatus.AVAILABLE
    assert c1.current_ticket is None
    assert engine.list_called_tickets() == []


def test_events_are_emitted_in_order(make_engine, recorder):
    engine = make_engine()
    t = engine.create_ticket("general")
    engine.call_next(1)
    engine.complete_service(t.number)

    assert recorder.types() == [
        "ticket_created",
        "ticket_called",
        "counter_updated",
        "ticket_updated",
        "counter_updated",
    ]
    created, called, busy, updated, freed = recorder.events
    assert isinstance(created, TicketCreated) and created.ticket.number == t.number
    assert isinstance(called, TicketCalled)
    assert (called.ticket_number, called.counter_number, called.service_type_id) == (t.number, 1, "general")
    assert isinstance(busy, CounterUpdated) and busy.counter.status == CounterStatus.SERVING
    assert isinstance(updated, TicketUpdated) and updated.status == TicketStatus.COMPLETED
    assert isinstance(freed, CounterUpdated) and freed.counter.status == CounterStatus.AVAILABLE


def test_fifo_within_a_service_type(make_engine):
    engine = make_engine()
    a = engine.create_ticket("general")
    b = engine.create_ticket("general")

    assert engine.call_next(1).number == a.number
    engine.complete_service(a.number)
    assert engine.call_next(1).number == b.number


def test_counter_service_order_decides_precedence(make_engine):
    engine = make_engine(Counter(number=1, name="C1", service_types=("express", "general")))
    general = engine.create_ticket("general")
    express = engine.create_ticket("express")

    first = engine.call_next(1)
    assert first.number == express.number
    engine.complete_service(first.number)
    assert engine.call_next(1).number == general.number


def test_call_next_returns_none_when_nothing_waits(make_engine, recorder):
    engine = make_engine()
    engine.create_ticket("vip")  # counter 1 can't serve vip

    assert engine.call_next(1) is None
    assert engine.get_counter(1).status == CounterStatus.AVAILABLE
    assert engine.queue_length("vip") == 1
    assert recorder.types() == ["ticket_created"]


def test_call_next_on_serving_counter_dequeues_nothing(make_engine):
    engine = make_engine()
    engine.create_ticket("general")
    engine.create_ticket("general")
    engine.call_next(1)

    with pytest.raises(CounterNotAvailable):
        engine.call_next(1)
    assert engine.queue_length("general") == 1


def test_call_next_unknown_counter(make_engine):
    engine = make_engine()
    with pytest.raises(UnknownCounter):
        engine.call_next(99)


def test_complete_unassigned_ticket_changes_nothing(make_engine, recorder):
    engine = make_engine()
    waiting = engine.create_ticket("general")
    counters_before = engine.list_counters()
    waiting_before = engine.list_waiting_tickets()
    recorder.clear()

    with pytest.raises(TicketNotAtAnyCounter):
        engine.complete_service(waiting.number)
    with pytest.raises(TicketNotAtAnyCounter):
        engine.complete_service("Z000000999")

    assert engine.list_counters() == counters_before
    assert engine.list_waiting_tickets() == waiting_before
    assert recorder.events == []


def test_completing_twice_fails(make_engine):
    engine = make_engine()
    t = engine.create_ticket("general")
    engine.call_next(1)
    engine.complete_service(t.number)
    with pytest.raises(TicketNotAtAnyCounter):
        engine.complete_service(t.number)


def test_unknown_service_type_changes_nothing(make_engine, recorder):
    engine = make_engine()
    with pytest.raises(UnknownServiceType):
        engine.create_ticket("unknown")

    assert engine.list_waiting_tickets() == []
    assert all(c.status == CounterStatus.AVAILABLE for c in engine.list_counters())
    assert recorder.events == []
    # The sequence wasn't consumed either.
    assert engine.create_ticket("general").number.endswith("001")


def test_inactive_service_type_is_rejected(clock):
    catalog = ServiceCatalog(
        [
            ServiceTypeDef(id="general", name="General", average_processing_minutes=10, ticket_prefix="A"),
            ServiceTypeDef(id="old", name="Old", average_processing_minutes=10, ticket_prefix="O", is_active=False),
        ]
    )
    engine = DispatchEngine(catalog, [Counter(number=1, name="C1", service_types=("general",))], clock=clock)

    with pytest.raises(UnknownServiceType):
        engine.create_ticket("old")
    assert [st.id for st in engine.list_service_types()] == ["general"]


def test_estimated_wait_is_a_snapshot(make_engine):
    engine = make_engine(
        Counter(number=1, name="C1", service_types=("general",)),
        Counter(number=2, name="C2", service_types=("general",)),
    )
    waits = [engine.create_ticket("general").estimated_wait_minutes for _ in range(4)]
    # 10-minute service, two counters: ceil(n * 10 / 2)
    assert waits == [0, 5, 10, 15]

    engine.call_next(1)
    remaining = engine.list_waiting_tickets()
    assert [t.estimated_wait_minutes for t in remaining] == [5, 10, 15]


def test_estimate_ignores_busy_and_closed_counters(make_engine):
    engine = make_engine(
        Counter(number=1, name="C1", service_types=("general",)),
        Counter(number=2, name="C2", service_types=("general",)),
        Counter(number=3, name="C3", service_types=("general",)),
    )
    engine.set_counter_status(3, CounterStatus.CLOSED)
    for _ in range(3):
        engine.create_ticket("general")
    engine.call_next(1)

    # 2 waiting, only counter 2 available -> 2 * 10 / 1
    assert engine.estimate_wait("general") == 20


def test_estimate_wait_minutes_rounds_up():
    assert estimate_wait_minutes(0, 10, 3) == 0
    assert estimate_wait_minutes(1, 10, 3) == 4
    assert estimate_wait_minutes(3, 5, 0) == 15


def test_set_counter_status(make_engine, recorder):
    engine = make_engine()
    engine.create_ticket("general")

    closed = engine.set_counter_status(1, CounterStatus.BREAK)
    assert closed.status == CounterStatus.BREAK
    assert isinstance(recorder.events[-1], CounterUpdated)
    with pytest.raises(CounterNotAvailable):
        engine.call_next(1)

    engine.set_counter_status(1, CounterStatus.AVAILABLE)
    assert engine.call_next(1) is not None
    with pytest.raises(InvalidStateError):
        engine.set_counter_status(1, CounterStatus.CLOSED)


def test_listers_return_detached_equal_snapshots(make_engine):
    engine = make_engine()
    engine.create_ticket("general")

    assert engine.list_counters() == engine.list_counters()
    assert engine.list_service_types() == engine.list_service_types()
    assert engine.list_waiting_tickets() == engine.list_waiting_tickets()

    snap = engine.list_counters()[0]
    snap.status = CounterStatus.CLOSED
    assert engine.get_counter(1).status == CounterStatus.AVAILABLE

    waiting = engine.list_waiting_tickets()[0]
    waiting.status = TicketStatus.CANCELLED
    assert engine.list_waiting_tickets()[0].status == TicketStatus.WAITING


def test_snapshot_reports_queue_lengths(make_engine):
    engine = make_engine()
    engine.create_ticket("general")
    engine.create_ticket("vip")

    msg = engine.snapshot().to_message()
    assert msg["type"] == "status_update"
    assert msg["queues"] == {"general": 1, "express": 0, "vip": 1}
    assert msg["counters"][0]["number"] == 1


def test_failing_sink_does_not_roll_back(make_engine):
    class BrokenSink:
        def emit(self, event):
            raise RuntimeError("transport down")

    engine = make_engine(sink=BrokenSink())
    t = engine.create_ticket("general")
    assert [w.number for w in engine.list_waiting_tickets()] == [t.number]
    assert engine.call_next(1).number == t.number
    engine.complete_service(t.number)
    assert engine.get_counter(1).status == CounterStatus.AVAILABLE


def test_counter_with_unknown_service_type_is_rejected(catalog):
    with pytest.raises(ValueError):
        DispatchEngine(catalog, [Counter(number=1, name="C1", service_types=("nope",))])


def test_concurrent_calls_never_share_a_ticket(make_engine):
    counters = [Counter(number=n, name=f"C{n}", service_types=("general", "express")) for n in range(1, 9)]
    engine = make_engine(*counters)

    created = set()
    create_lock = threading.Lock()

    def create(kind, count):
        for _ in range(count):
            t = engine.create_ticket(kind)
            with create_lock:
                created.add(t.number)

    creators = [threading.Thread(target=create, args=(kind, 100)) for kind in ("general", "express", "general")]
    for t in creators:
        t.start()
    for t in creators:
        t.join()
    assert len(created) == 300

    served = {n: [] for n in range(1, 9)}

    def work(counter_number):
        while True:
            ticket = engine.call_next(counter_number)
            if ticket is None:
                return
            served[counter_number].append(ticket.number)
            engine.complete_service(ticket.number)

    workers = [threading.Thread(target=work, args=(n,)) for n in served]
    for t in workers:
        t.start()
    for t in workers:
        t.join()

    all_served = [num for nums in served.values() for num in nums]
    assert len(all_served) == len(set(all_served)) == 300
    assert set(all_served) == created
    assert all(c.status == CounterStatus.AVAILABLE for c in engine.list_counters())


def test_concurrent_create_and_call_keep_fifo_per_type(make_engine):
    counters = [
        Counter(number=n, name=f"C{n}", service_types=("general", "express") if n % 2 else ("express", "general"))
        for n in range(1, 7)
    ]
    engine = make_engine(*counters)
    producing_done = threading.Event()

    def create(kind, count):
        for _ in range(count):
            engine.create_ticket(kind)

    served = {n: [] for n in range(1, 7)}

    def work(counter_number):
        while True:
            finished = producing_done.is_set()
            ticket = engine.call_next(counter_number)
            if ticket is None:
                if finished:
                    return
                continue
            served[counter_number].append((ticket.service_type_id, ticket.number))
            engine.complete_service(ticket.number)

    workers = [threading.Thread(target=work, args=(n,)) for n in served]
    producers = [threading.Thread(target=create, args=(kind, 150)) for kind in ("general", "express", "general")]
    for t in workers + producers:
        t.start()
    for t in producers:
        t.join()
    producing_done.set()
    for t in workers:
        t.join()

    all_served = [num for pairs in served.values() for _, num in pairs]
    assert len(all_served) == len(set(all_served)) == 450
    assert engine.queue_length("general") == engine.queue_length("express") == 0

    for pairs in served.values():
        for kind in ("general", "express"):
            numbers = [num for sid, num in pairs if sid == kind]
            assert numbers == sorted(numbers)
