from datetime import datetime, timezone

import pytest

from service_queue.counters import CounterRegistry
from service_queue.errors import UnknownServiceType
from service_queue.models import Counter, CounterStatus, Ticket
from service_queue.queue_store import QueueStore


def _ticket(number, service_type_id="general"):
    return Ticket(
        number=number,
        service_type_id=service_type_id,
        priority=1,
        created_at=datetime(2026, 10, 19, tzinfo=timezone.utc),
    )


@pytest.fixture
def registry():
    return CounterRegistry(
        [
            Counter(number=1, name="C1", service_types=("general", "express")),
            Counter(number=2, name="C2", service_types=("general",)),
            Counter(number=3, name="VIP", service_types=("vip",)),
        ]
    )


@pytest.fixture
def store(registry):
    return QueueStore(["general", "express", "vip"], registry)


def test_fifo_per_service_type(store):
    a, b = _ticket("A1"), _ticket("A2")
    store.enqueue("general", a)
    store.enqueue("general", b)

    assert store.peek("general") is a
    assert store.dequeue("general") is a
    assert store.dequeue("general") is b
    assert store.dequeue("general") is None


def test_lengths_and_waiting_view(store):
    store.enqueue("express", _ticket("E1", "express"))
    store.enqueue("general", _ticket("A1"))
    store.enqueue("general", _ticket("A2"))

    assert store.length("general") == 2
    assert store.total_waiting() == 3
    assert store.lengths() == {"general": 2, "express": 1, "vip": 0}
    assert [t.number for t in store.waiting()] == ["A1", "A2", "E1"]


def test_ticket_cannot_wait_twice(store):
    t = _ticket("A1")
    store.enqueue("general", t)
    with pytest.raises(ValueError):
        store.enqueue("express", t)

    store.dequeue("general")
    assert not store.is_waiting("A1")


def test_unknown_service_type(store):
    with pytest.raises(UnknownServiceType):
        store.enqueue("nope", _ticket("X1"))
    with pytest.raises(UnknownServiceType):
        store.length("nope")


def test_is_available_for_counts_eligible_available_counters(store, registry):
    assert store.is_available_for("general") == 2
    assert store.is_available_for("express") == 1
    assert store.is_available_for("vip") == 1

    registry.set_serving(1, "A1")
    registry.set_status(3, CounterStatus.BREAK)
    assert store.is_available_for("general") == 1
    assert store.is_available_for("express") == 0
    assert store.is_available_for("vip") == 0
