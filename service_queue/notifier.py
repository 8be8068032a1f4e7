"""Event sinks that push domain events out to observers.

`MqttEventSink` turns each event into a JSON message on
`<ns>/events/<event_type>` and, for ticket events, also on the service-type
group topic `<ns>/groups/<service_type_id>/<event_type>`.

`QueuedEventSink` decouples the engine from slow transports: `emit()` only
enqueues, a daemon thread does the delivery. Failures are logged and dropped.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import TYPE_CHECKING

from .events import CounterUpdated, DomainEvent, EventSink
from .mqtt_topics import DEFAULT_NAMESPACE, event_topic, group_event_topic

if TYPE_CHECKING:
    from .mqtt_client import MqttClient

logger = logging.getLogger(__name__)


class MqttEventSink:
    def __init__(self, mqtt: MqttClient, namespace: str = DEFAULT_NAMESPACE) -> None:
        self.mqtt = mqtt
        self.namespace = namespace

    def topics_for(self, event: DomainEvent) -> list[str]:
        topics = [event_topic(event.event_type, self.namespace)]
        # Counter updates aren't tied to a single service type.
        if not isinstance(event, CounterUpdated) and event.service_type_id:
            topics.append(group_event_topic(event.service_type_id, event.event_type, self.namespace))
        return topics

    def emit(self, event: DomainEvent) -> None:
        msg = event.to_message()
        for topic in self.topics_for(event):
            self.mqtt.publish(topic, msg)


class QueuedEventSink:
    """Fire-and-forget wrapper around another sink."""

    def __init__(self, inner: EventSink, *, maxsize: int = 0) -> None:
        self.inner = inner
        self._queue: "queue.Queue[DomainEvent | None]" = queue.Queue(maxsize=maxsize)
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._deliver_loop, name="event-sink", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        """Deliver what's already queued, then stop the worker thread."""
        t = self._thread
        if t is None:
            return
        self._queue.put(None)
        t.join(timeout=timeout)
        self._thread = None

    def emit(self, event: DomainEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            logger.warning("event queue full, dropping %s", event.event_type)

    def pending(self) -> int:
        return self._queue.qsize()

    def _deliver_loop(self) -> None:
        while True:
            event = self._queue.get()
            if event is None:
                return
            try:
                self.inner.emit(event)
            except Exception:
                logger.exception("delivering %s failed", event.event_type)
