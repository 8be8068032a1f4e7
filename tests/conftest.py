from datetime import datetime, timezone

import pytest

from service_queue.catalog import ServiceCatalog
from service_queue.engine import DispatchEngine
from service_queue.events import EventRecorder
from service_queue.models import Counter, ServiceTypeDef

FIXED_NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)
TODAY = "261019"


class FakeMqtt:
    """Records publishes instead of talking to a broker."""

    def __init__(self):
        self.published = []
        self.subscriptions = []
        self.handlers = []

    def subscribe(self, topic):
        self.subscriptions.append(topic)

    def add_handler(self, handler):
        self.handlers.append(handler)

    def publish(self, topic, message):
        self.published.append((topic, message))

    def topics(self):
        return [t for t, _ in self.published]


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def fake_mqtt():
    return FakeMqtt()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def catalog():
    return ServiceCatalog(
        [
            ServiceTypeDef(id="general", name="General", average_processing_minutes=10, ticket_prefix="A"),
            ServiceTypeDef(id="express", name="Express", average_processing_minutes=5, ticket_prefix="E", default_priority=2),
            ServiceTypeDef(id="vip", name="VIP", average_processing_minutes=15, ticket_prefix="V", default_priority=3),
        ]
    )


@pytest.fixture
def make_engine(catalog, recorder, clock):
    def _make(*counters, sink=recorder):
        if not counters:
            counters = (Counter(number=1, name="C1", service_types=("general",)),)
        return DispatchEngine(catalog, counters, sink=sink, clock=clock)

    return _make
