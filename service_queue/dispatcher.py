from __future__ import annotations

# Dispatcher process: the MQTT face of the DispatchEngine.
#
# The engine (engine.py) is pure logic and easy to unit test. This module adds:
# 1) `MqttDispatchService`: request/response handling + periodic status broadcast
# 2) `main()`: process entry point
#
# Request types on `<ns>/dispatcher/requests` (all carry `reply_to` + `corr_id`):
#   create_ticket       {service_type}
#   call_next           {counter_number}
#   complete_service    {ticket_number}
#   set_counter_status  {counter_number, status}
#   list_waiting | list_counters | list_service_types

import argparse
import logging
import threading
import time
from typing import Any, Callable, TYPE_CHECKING

from .engine import DispatchEngine
from .errors import DispatchError, ErrorResponse
from .models import CounterStatus

if TYPE_CHECKING:
    from .mqtt_client import MqttClient

logger = logging.getLogger(__name__)


class BadRequest(ValueError):
    pass


def _require_str(msg: dict[str, Any], key: str) -> str:
    value = msg.get(key)
    if not isinstance(value, str) or not value:
        raise BadRequest(f"{key} required")
    return value


def _require_int(msg: dict[str, Any], key: str) -> int:
    value = msg.get(key)
    # JSON has no int/bool distinction worth trusting here.
    if isinstance(value, bool):
        raise BadRequest(f"{key} must be an integer")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise BadRequest(f"{key} must be an integer") from None


class MqttDispatchService:
    """MQTT adapter around the DispatchEngine."""

    def __init__(self, *, mqtt: MqttClient, engine: DispatchEngine, namespace: str) -> None:
        # Local import so tests can drive the adapter with a fake client.
        from .mqtt_topics import dispatcher_requests, status_updates

        self._requests_topic = dispatcher_requests(namespace)
        self._status_topic = status_updates(namespace)

        self.mqtt = mqtt
        self.engine = engine
        self.namespace = namespace

        self._handlers: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
            "create_ticket": self._create_ticket,
            "call_next": self._call_next,
            "complete_service": self._complete_service,
            "set_counter_status": self._set_counter_status,
            "list_waiting": self._list_waiting,
            "list_counters": self._list_counters,
            "list_service_types": self._list_service_types,
        }

        self._stop_event = threading.Event()
        self._status_thread: threading.Thread | None = None

    def start(self, *, publish_status_every: float = 2.0) -> None:
        self.mqtt.subscribe(self._requests_topic)
        self.mqtt.add_handler(self.handle_message)

        self._status_thread = threading.Thread(
            target=self._status_publisher_loop,
            args=(publish_status_every,),
            name="status-publisher",
            daemon=True,
        )
        self._status_thread.start()

    def stop(self) -> None:
        """Stop background threads. Call before disconnecting MQTT."""
        self._stop_event.set()
        t = self._status_thread
        if t and t.is_alive():
            t.join(timeout=1.0)

    def publish_status(self) -> None:
        self.mqtt.publish(self._status_topic, self.engine.snapshot().to_message())

    def _status_publisher_loop(self, interval: float) -> None:
        while not self._stop_event.is_set():
            try:
                self.publish_status()
            except Exception:
                # Keep publishing even if one snapshot fails.
                logger.exception("status publish failed")
            self._stop_event.wait(interval)

    def _reply(self, reply_to: str, corr_id: str | None, message: dict[str, Any]) -> None:
        msg = dict(message)
        if corr_id is not None:
            msg["corr_id"] = corr_id
        self.mqtt.publish(reply_to, msg)

    def handle_message(self, topic: str, msg: dict[str, Any]) -> None:
        if topic != self._requests_topic:
            return

        mtype = msg.get("type")
        corr_id = msg.get("corr_id") if isinstance(msg.get("corr_id"), str) else None
        reply_to = msg.get("reply_to") if isinstance(msg.get("reply_to"), str) else None
        if not reply_to:
            logger.debug("ignoring %r without reply_to", mtype)
            return

        handler = self._handlers.get(mtype) if isinstance(mtype, str) else None
        if handler is None:
            err = ErrorResponse("bad_request", f"unknown request type {mtype!r}")
            self._reply(reply_to, corr_id, err.to_message())
            return

        try:
            response = handler(msg)
        except BadRequest as e:
            response = ErrorResponse("bad_request", str(e)).to_message()
        except DispatchError as e:
            logger.info("%s refused: %s", mtype, e)
            response = ErrorResponse.from_exception(e).to_message()
        except Exception:
            logger.exception("%s failed", mtype)
            response = ErrorResponse("internal_error", "Internal dispatcher error").to_message()
        self._reply(reply_to, corr_id, response)

    # -------------------- request handlers --------------------

    def _create_ticket(self, msg: dict[str, Any]) -> dict[str, Any]:
        ticket = self.engine.create_ticket(_require_str(msg, "service_type"))
        return {"type": "ticket_created", "ticket": ticket.to_message()}

    def _call_next(self, msg: dict[str, Any]) -> dict[str, Any]:
        ticket = self.engine.call_next(_require_int(msg, "counter_number"))
        # A null ticket means "nothing waiting", not an error.
        return {"type": "ticket_called", "ticket": ticket.to_message() if ticket else None}

    def _complete_service(self, msg: dict[str, Any]) -> dict[str, Any]:
        ticket_number = _require_str(msg, "ticket_number")
        self.engine.complete_service(ticket_number)
        return {"type": "service_completed", "ticket_number": ticket_number}

    def _set_counter_status(self, msg: dict[str, Any]) -> dict[str, Any]:
        number = _require_int(msg, "counter_number")
        raw_status = _require_str(msg, "status")
        try:
            status = CounterStatus(raw_status)
        except ValueError:
            raise BadRequest(f"unknown counter status {raw_status!r}") from None
        counter = self.engine.set_counter_status(number, status)
        return {"type": "counter_updated", "counter": counter.to_message()}

    def _list_waiting(self, msg: dict[str, Any]) -> dict[str, Any]:
        return {"type": "waiting_tickets", "tickets": [t.to_message() for t in self.engine.list_waiting_tickets()]}

    def _list_counters(self, msg: dict[str, Any]) -> dict[str, Any]:
        return {"type": "counters", "counters": [c.to_message() for c in self.engine.list_counters()]}

    def _list_service_types(self, msg: dict[str, Any]) -> dict[str, Any]:
        return {
            "type": "service_types",
            "service_types": [st.to_message() for st in self.engine.list_service_types()],
        }


def main() -> None:
    # Import MQTT dependencies only when running the real service.
    from .config import default_config, load_config
    from .log import setup_logging
    from .mqtt_client import MqttClient
    from .mqtt_topics import DEFAULT_NAMESPACE
    from .notifier import MqttEventSink, QueuedEventSink

    parser = argparse.ArgumentParser(description="Queue dispatcher (MQTT)")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument("--config", default=None, help="JSON file with service_types and counters")
    parser.add_argument(
        "--publish-status-every",
        type=float,
        default=2.0,
        help="seconds between broadcast status snapshots",
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)
    config = load_config(args.config) if args.config else default_config()

    mqtt_client = MqttClient(client_id="dispatcher", host=args.mqtt_host, port=args.mqtt_port)
    mqtt_client.start()

    sink = QueuedEventSink(MqttEventSink(mqtt_client, args.namespace))
    sink.start()
    engine = DispatchEngine(config.catalog, config.counters, sink=sink)

    service = MqttDispatchService(mqtt=mqtt_client, engine=engine, namespace=args.namespace)
    service.start(publish_status_every=args.publish_status_every)

    logger.info(
        "dispatcher connected to MQTT %s:%d, namespace=%s, %d service types, %d counters",
        args.mqtt_host,
        args.mqtt_port,
        args.namespace,
        len(config.catalog),
        len(config.counters),
    )

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        service.stop()
        sink.stop()
        mqtt_client.stop()


if __name__ == "__main__":
    main()
