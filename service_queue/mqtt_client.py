"""JSON-over-MQTT client used by the dispatcher and every agent.

paho-mqtt delivers messages on its own network thread. Kiosks and counter
terminals want a blocking call instead ("give me the next ticket"), so
`request()` layers a correlated request/reply exchange on top of pub/sub:
the request carries `corr_id` and `reply_to`, and the reply echoes `corr_id`.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from concurrent import futures
from typing import Any, Callable

import paho.mqtt.client as mqtt

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, dict[str, Any]], None]


def decode_payload(payload: bytes | str) -> dict[str, Any] | None:
    """JSON object carried by a message, or None if it isn't one."""
    try:
        text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
        data = json.loads(text)
    except (UnicodeDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


class MqttClient:
    def __init__(
        self,
        *,
        client_id: str,
        host: str,
        port: int,
        keepalive: int = 30,
        qos: int = 0,
    ) -> None:
        self.client_id = client_id
        self.host = host
        self.port = port
        self.keepalive = keepalive
        self.qos = qos

        self._client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id, clean_session=True)
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

        self._connected = threading.Event()
        self._lock = threading.Lock()
        self._handlers: list[MessageHandler] = []
        self._subscriptions: set[str] = set()
        # corr_id -> reply slot for an in-flight request()
        self._waiting: dict[str, futures.Future[dict[str, Any]]] = {}
        self._running = False

    def start(self, *, connect_timeout: float = 10.0) -> None:
        """Connect, start the network loop and wait for the broker's CONNACK."""
        if self._running:
            return
        self._client.connect(self.host, self.port, keepalive=self.keepalive)
        self._client.loop_start()
        self._running = True
        if not self._connected.wait(connect_timeout):
            self.stop()
            raise ConnectionError(f"{self.client_id}: no CONNACK from {self.host}:{self.port}")

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._client.disconnect()
        self._client.loop_stop()

    def add_handler(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    def subscribe(self, topic: str) -> None:
        with self._lock:
            self._subscriptions.add(topic)
            # Otherwise _on_connect picks it up.
            if self._connected.is_set():
                self._client.subscribe(topic, qos=self.qos)

    def publish(self, topic: str, message: dict[str, Any]) -> None:
        payload = json.dumps(message, separators=(",", ":"))
        self._client.publish(topic, payload=payload.encode("utf-8"), qos=self.qos)

    def request(
        self,
        *,
        request_topic: str,
        response_topic: str,
        message: dict[str, Any],
        timeout: float = 5.0,
    ) -> dict[str, Any]:
        """Send `message` and block until the reply arrives on `response_topic`.

        Raises TimeoutError if no reply comes back within `timeout` seconds.
        """
        corr_id = uuid.uuid4().hex
        slot: futures.Future[dict[str, Any]] = futures.Future()
        with self._lock:
            self._waiting[corr_id] = slot
        try:
            self.publish(request_topic, {**message, "corr_id": corr_id, "reply_to": response_topic})
            return slot.result(timeout=timeout)
        except futures.TimeoutError:
            raise TimeoutError(f"no reply to {message.get('type')!r} within {timeout}s") from None
        finally:
            with self._lock:
                self._waiting.pop(corr_id, None)

    # paho callbacks, run on the network thread

    def _on_connect(self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        if reason_code.is_failure:
            logger.error("%s: broker refused connection: %s", self.client_id, reason_code)
            return
        # Clean sessions forget subscriptions across reconnects.
        with self._lock:
            for topic in sorted(self._subscriptions):
                client.subscribe(topic, qos=self.qos)
            self._connected.set()
        logger.debug("%s connected to %s:%d", self.client_id, self.host, self.port)

    def _on_disconnect(self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        self._connected.clear()
        if self._running:
            logger.warning("%s lost broker connection: %s", self.client_id, reason_code)

    def _on_message(self, client: mqtt.Client, userdata: Any, msg: mqtt.MQTTMessage) -> None:
        data = decode_payload(msg.payload)
        if data is None:
            logger.warning("dropping non-JSON-object payload on %s", msg.topic)
            return

        corr_id = data.get("corr_id")
        with self._lock:
            slot = self._waiting.get(corr_id) if isinstance(corr_id, str) else None
        if slot is not None:
            if not slot.done():
                slot.set_result(data)
            return

        for handler in list(self._handlers):
            try:
                handler(msg.topic, data)
            except Exception:
                logger.exception("handler failed for message on %s", msg.topic)
