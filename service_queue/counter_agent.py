from __future__ import annotations

# Counter terminal agent.
#
# Stands in for a staffed counter:
# - asks the dispatcher for the next ticket this counter may serve
# - "serves" it by sleeping for a simulated service time
# - reports completion, then asks again
# - backs off briefly when nothing is waiting or the counter is closed
# - after a lost reply, releases whatever ticket the dispatcher says it holds
#
# The dispatcher decides which ticket comes next; the agent only knows its own
# counter number.

import argparse
import logging
import time
from typing import Callable

from .log import setup_logging
from .mqtt_client import MqttClient
from .mqtt_topics import DEFAULT_NAMESPACE, dispatcher_requests, dispatcher_responses
from .service_time import compute_service_time_seconds

logger = logging.getLogger(__name__)


class CounterAgentError(RuntimeError):
    pass


def _expect(resp: dict, expected_type: str) -> dict:
    if resp.get("type") != expected_type:
        raise CounterAgentError(f"unexpected reply: {resp}")
    return resp


def _finish_held_ticket(request: Callable[[dict], dict], counter_number: int) -> str | None:
    """Complete whatever ticket the dispatcher thinks this counter is serving.

    Returns the completed ticket number, or None if the counter holds nothing
    (for example because it is closed or on break).
    """
    try:
        resp = _expect(request({"type": "list_counters"}), "counters")
    except TimeoutError:
        logger.warning("counter %d: list_counters timed out", counter_number)
        return None

    mine = next((c for c in resp["counters"] if c["number"] == counter_number), None)
    if mine is None:
        raise CounterAgentError(f"dispatcher does not know counter {counter_number}")
    number = mine.get("current_ticket")
    if mine.get("status") != "serving" or not number:
        logger.debug("counter %d is %s", counter_number, mine.get("status"))
        return None

    try:
        resp = request({"type": "complete_service", "ticket_number": number})
    except TimeoutError:
        logger.warning("counter %d: completion of held %s timed out", counter_number, number)
        return None
    if resp.get("type") == "error" and resp.get("code") == "ticket_not_at_any_counter":
        # Completed by someone else in the meantime.
        return None
    _expect(resp, "service_completed")
    logger.info("counter %d released held ticket %s", counter_number, number)
    return number


def run_counter(
    *,
    mqtt_host: str,
    mqtt_port: int,
    namespace: str,
    counter_number: int,
    time_scale: float = 0.01,
    idle_seconds: float = 0.5,
    jitter: bool = False,
    max_tickets: int | None = None,
) -> int:
    """Serve tickets until interrupted (or `max_tickets` served). Returns the count."""
    client_id = f"counter-{counter_number}"
    mqtt = MqttClient(client_id=client_id, host=mqtt_host, port=mqtt_port)
    mqtt.start()

    reply_topic = dispatcher_responses(client_id, namespace)
    mqtt.subscribe(reply_topic)

    def request(message: dict) -> dict:
        return mqtt.request(
            request_topic=dispatcher_requests(namespace),
            response_topic=reply_topic,
            message=message,
            timeout=5.0,
        )

    served = 0
    try:
        # Average processing time per service type, for the simulated delay.
        catalog = _expect(request({"type": "list_service_types"}), "service_types")
        avg_minutes = {st["id"]: st["average_processing_minutes"] for st in catalog["service_types"]}

        logger.info("counter %d ready (time_scale=%s)", counter_number, time_scale)

        while max_tickets is None or served < max_tickets:
            try:
                resp = request({"type": "call_next", "counter_number": counter_number})
            except TimeoutError:
                # The dispatcher may have assigned a ticket we never heard about.
                logger.warning("counter %d: call_next timed out, resyncing", counter_number)
                if _finish_held_ticket(request, counter_number) is None:
                    time.sleep(idle_seconds)
                continue

            if resp.get("type") == "error" and resp.get("code") == "counter_not_available":
                # Closed, on break, or still serving a ticket from a lost exchange.
                if _finish_held_ticket(request, counter_number) is None:
                    time.sleep(idle_seconds)
                continue

            ticket = _expect(resp, "ticket_called").get("ticket")
            if ticket is None:
                time.sleep(idle_seconds)
                continue

            number = ticket["number"]
            st = compute_service_time_seconds(
                average_minutes=avg_minutes.get(ticket["service_type_id"], 1),
                time_scale=time_scale,
                jitter=jitter,
            )
            logger.info("counter %d serving %s (%0.2fs)", counter_number, number, st)
            time.sleep(st)

            try:
                _expect(request({"type": "complete_service", "ticket_number": number}), "service_completed")
            except TimeoutError:
                # Picked up by the resync on the next call_next if it was lost.
                logger.warning("counter %d: completion of %s unconfirmed", counter_number, number)
                continue
            served += 1
            logger.info("counter %d done %s", counter_number, number)
    except KeyboardInterrupt:
        pass
    finally:
        mqtt.stop()
    return served


def main() -> None:
    parser = argparse.ArgumentParser(description="Counter terminal agent (MQTT)")
    parser.add_argument("--counter-number", type=int, required=True)
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument(
        "--time-scale",
        type=float,
        default=0.01,
        help="real seconds per simulated second of service",
    )
    parser.add_argument("--idle-seconds", type=float, default=0.5, help="wait when no ticket is waiting")
    parser.add_argument("--jitter", action="store_true", help="exponentially distributed service times")
    parser.add_argument("--max-tickets", type=int, default=None)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)
    run_counter(
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        namespace=args.namespace,
        counter_number=args.counter_number,
        time_scale=args.time_scale,
        idle_seconds=args.idle_seconds,
        jitter=args.jitter,
        max_tickets=args.max_tickets,
    )


if __name__ == "__main__":
    main()
