from __future__ import annotations

# Ticket kiosk client.
#
# A kiosk press is a short-lived process:
# - connect to broker
# - send a create_ticket request
# - print the ticket number and estimated wait, then exit

import argparse
import sys
import time

from .mqtt_client import MqttClient
from .mqtt_topics import DEFAULT_NAMESPACE, dispatcher_requests, dispatcher_responses


def draw_ticket(*, mqtt_host: str, mqtt_port: int, namespace: str, service_type: str) -> dict:
    # Unique client id so several kiosks can run at once.
    client_id = f"kiosk-{service_type}-{int(time.time() * 1000)}"
    mqtt = MqttClient(client_id=client_id, host=mqtt_host, port=mqtt_port)
    mqtt.start()

    reply_topic = dispatcher_responses(client_id, namespace)
    mqtt.subscribe(reply_topic)

    try:
        return mqtt.request(
            request_topic=dispatcher_requests(namespace),
            response_topic=reply_topic,
            message={"type": "create_ticket", "service_type": service_type},
            timeout=5.0,
        )
    finally:
        mqtt.stop()


def main() -> None:
    parser = argparse.ArgumentParser(description="Ticket kiosk (MQTT)")
    parser.add_argument("--service-type", required=True, help="e.g. general, express, vip")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    args = parser.parse_args()

    resp = draw_ticket(
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        namespace=args.namespace,
        service_type=args.service_type,
    )
    if resp.get("type") == "ticket_created":
        ticket = resp["ticket"]
        print(f"Your ticket: {ticket['number']} (estimated wait {ticket['estimated_wait_minutes']} min)")
    else:
        print(f"Could not draw a ticket: {resp.get('message', resp)}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
