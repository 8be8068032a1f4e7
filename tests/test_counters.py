import pytest

from service_queue.counters import CounterRegistry
from service_queue.errors import CounterNotAvailable, InvalidStateError, UnknownCounter
from service_queue.models import Counter, CounterStatus


@pytest.fixture
def registry():
    return CounterRegistry(
        [
            Counter(number=2, name="C2", service_types=("general",)),
            Counter(number=1, name="C1", service_types=("express", "general")),
        ]
    )


def test_list_all_is_sorted_by_number(registry):
    assert [c.number for c in registry.list_all()] == [1, 2]


def test_get_unknown(registry):
    with pytest.raises(UnknownCounter):
        registry.get(7)


def test_serving_round_trip(registry):
    c = registry.set_serving(1, "A261019001")
    assert c.status == CounterStatus.SERVING
    assert c.current_ticket == "A261019001"
    assert registry.find_by_ticket("A261019001") is c

    with pytest.raises(CounterNotAvailable):
        registry.set_serving(1, "A261019002")

    registry.set_available(1)
    assert registry.get(1).current_ticket is None
    assert registry.find_by_ticket("A261019001") is None


def test_set_available_requires_serving(registry):
    with pytest.raises(InvalidStateError):
        registry.set_available(2)


def test_admin_status_changes(registry):
    registry.set_status(2, CounterStatus.CLOSED)
    assert registry.count_available_for("general") == 1
    with pytest.raises(CounterNotAvailable):
        registry.set_serving(2, "A1")

    with pytest.raises(InvalidStateError):
        registry.set_status(2, CounterStatus.SERVING)

    registry.set_serving(1, "A1")
    with pytest.raises(InvalidStateError):
        registry.set_status(1, CounterStatus.BREAK)


def test_registry_copies_input_counters():
    original = Counter(number=1, name="C1", service_types=("general",))
    registry = CounterRegistry([original])
    registry.set_serving(1, "A1")
    assert original.status == CounterStatus.AVAILABLE


@pytest.mark.parametrize(
    "counters",
    [
        [Counter(number=0, name="zero", service_types=("general",))],
        [Counter(number=1, name="a", service_types=("general",)), Counter(number=1, name="b", service_types=("general",))],
        [Counter(number=1, name="empty", service_types=())],
        [Counter(number=1, name="odd", service_types=("general",), status=CounterStatus.SERVING)],
    ],
)
def test_invalid_registries(counters):
    with pytest.raises(ValueError):
        CounterRegistry(counters)
