from __future__ import annotations

# Single-command runner.
#
# Starts a full local system by spawning child processes:
# - dispatcher
# - one counter agent per configured counter
# - kiosk traffic generator (Poisson arrivals)
#
# Optionally opens the Tkinter display board in the parent process (`--gui`).

import argparse
import logging
import os
import signal
import subprocess
import sys
import time
from dataclasses import dataclass

from .config import default_config, load_config
from .generator import DEFAULT_WEIGHTS
from .log import setup_logging
from .mqtt_topics import DEFAULT_NAMESPACE

logger = logging.getLogger(__name__)


@dataclass
class Child:
    name: str
    proc: subprocess.Popen


def run_all(
    *,
    mqtt_host: str,
    mqtt_port: int,
    namespace: str,
    config_path: str | None,
    arrival_rate: float,
    weights: str,
    seed: int | None,
    time_scale: float,
    show_gui: bool,
    log_level: str = "INFO",
) -> None:
    if arrival_rate <= 0:
        raise ValueError("arrival_rate must be > 0")

    # Validate the layout up front so a bad file fails here, not in a child.
    config = load_config(config_path) if config_path else default_config()

    python = sys.executable
    mqtt_args = ["--mqtt-host", mqtt_host, "--mqtt-port", str(mqtt_port), "--namespace", namespace]

    # Each child gets its own process group so Ctrl+C can stop everything.
    def popen(name: str, module: str, extra: list[str]) -> Child:
        proc = subprocess.Popen(
            [python, "-m", module, *mqtt_args, *extra],
            preexec_fn=os.setsid,
        )
        return Child(name=name, proc=proc)

    children: list[Child] = []

    disp_args = ["--log-level", log_level]
    if config_path:
        disp_args += ["--config", config_path]
    children.append(popen("dispatcher", "service_queue.dispatcher", disp_args))

    # Give the dispatcher a moment to connect before clients start requesting.
    time.sleep(0.5)

    for counter in config.counters:
        children.append(
            popen(
                f"counter-{counter.number}",
                "service_queue.counter_agent",
                [
                    "--counter-number",
                    str(counter.number),
                    "--time-scale",
                    str(time_scale),
                    "--log-level",
                    log_level,
                ],
            )
        )

    gen_args = ["--rate", str(arrival_rate), "--weights", weights, "--log-level", log_level]
    if seed is not None:
        gen_args += ["--seed", str(seed)]
    children.append(popen("generator", "service_queue.generator", gen_args))

    logger.info(
        "started: %s. Press Ctrl+C to stop all.",
        ", ".join(f"{c.name}(pid={c.proc.pid})" for c in children),
    )

    if show_gui:
        try:
            from .display import DisplayBoard

            board = DisplayBoard(mqtt_host=mqtt_host, mqtt_port=mqtt_port, namespace=namespace)
            board.start()
        finally:
            _terminate_children(children)
        return

    try:
        while True:
            for c in children:
                rc = c.proc.poll()
                if rc is not None:
                    raise RuntimeError(f"Child {c.name} exited with code {rc}")
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        _terminate_children(children)


def _signal_group(child: Child, sig: signal.Signals) -> None:
    try:
        os.killpg(os.getpgid(child.proc.pid), sig)
    except ProcessLookupError:
        pass


def _terminate_children(children: list[Child]) -> None:
    for c in children:
        if c.proc.poll() is None:
            _signal_group(c, signal.SIGTERM)

    deadline = time.time() + 2.0
    while time.time() < deadline:
        if all(c.proc.poll() is not None for c in children):
            return
        time.sleep(0.1)

    for c in children:
        if c.proc.poll() is None:
            logger.warning("%s did not stop, killing", c.name)
            _signal_group(c, signal.SIGKILL)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run dispatcher + counter agents + kiosk generator")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument("--config", default=None, help="JSON file with service_types and counters")
    parser.add_argument("--arrival-rate", type=float, required=True, help="λ tickets/second")
    parser.add_argument("--weights", default=DEFAULT_WEIGHTS)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--time-scale", type=float, default=0.01)
    parser.add_argument("--gui", action="store_true", help="show the Tkinter display board")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    setup_logging(args.log_level)
    run_all(
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        namespace=args.namespace,
        config_path=args.config,
        arrival_rate=args.arrival_rate,
        weights=args.weights,
        seed=args.seed,
        time_scale=args.time_scale,
        show_gui=args.gui,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
