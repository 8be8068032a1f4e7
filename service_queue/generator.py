from __future__ import annotations

# Kiosk traffic generator.
#
# Simulates a stream of customers drawing tickets, using the same
# create_ticket request as the interactive kiosk.
#
# Poisson arrival model:
# - tickets arrive according to a Poisson process with rate λ (tickets/sec)
# - each arrival picks a service type by weight (e.g. general=6,express=3,vip=1)

import argparse
import logging
import random
import time

from .arrival import choose_service_type, parse_weights, sample_exponential_interarrival
from .log import setup_logging
from .mqtt_client import MqttClient
from .mqtt_topics import DEFAULT_NAMESPACE, dispatcher_requests, dispatcher_responses

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS = "general=6,express=3,vip=1"


def run_generator(
    *,
    mqtt_host: str,
    mqtt_port: int,
    namespace: str,
    rate_per_sec: float,
    weights: dict[str, float],
    max_tickets: int | None = None,
    seed: int | None = None,
) -> None:
    """Draw tickets indefinitely (or until `max_tickets`)."""
    rng = random.Random(seed) if seed is not None else None

    client_id = f"generator-{int(time.time())}"
    mqtt = MqttClient(client_id=client_id, host=mqtt_host, port=mqtt_port)
    mqtt.start()

    reply_topic = dispatcher_responses(client_id, namespace)
    mqtt.subscribe(reply_topic)

    logger.info(
        "generator connected to MQTT %s:%d, namespace=%s, rate=%s tickets/s",
        mqtt_host,
        mqtt_port,
        namespace,
        rate_per_sec,
    )

    i = 0
    try:
        while max_tickets is None or i < max_tickets:
            dt = sample_exponential_interarrival(rate_per_sec=rate_per_sec, rng=rng)
            time.sleep(dt)

            i += 1
            service_type = choose_service_type(weights, rng=rng)
            try:
                resp = mqtt.request(
                    request_topic=dispatcher_requests(namespace),
                    response_topic=reply_topic,
                    message={"type": "create_ticket", "service_type": service_type},
                    timeout=5.0,
                )
            except TimeoutError:
                logger.warning("no reply drawing a %s ticket", service_type)
                continue

            if resp.get("type") == "ticket_created":
                ticket = resp["ticket"]
                logger.info(
                    "%s -> %s (est. wait %s min, dt=%0.2fs)",
                    service_type,
                    ticket["number"],
                    ticket["estimated_wait_minutes"],
                    dt,
                )
            else:
                logger.warning("%s -> error %s", service_type, resp)
        logger.info("reached max_tickets=%d, stopping", max_tickets)
    except KeyboardInterrupt:
        pass
    finally:
        mqtt.stop()


def main() -> None:
    parser = argparse.ArgumentParser(description="Kiosk traffic generator (Poisson arrivals over MQTT)")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument(
        "--rate",
        type=float,
        required=True,
        help="arrival rate λ in tickets/second (Poisson process)",
    )
    parser.add_argument("--weights", default=DEFAULT_WEIGHTS, help="service type weights, name=weight,...")
    parser.add_argument("--max-tickets", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)
    run_generator(
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        namespace=args.namespace,
        rate_per_sec=args.rate,
        weights=parse_weights(args.weights),
        max_tickets=args.max_tickets,
        seed=args.seed,
    )


if __name__ == "__main__":
    main()
