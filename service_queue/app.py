from __future__ import annotations

# Single-entrypoint CLI.
#
# The usual way to run the project is:
#     python -m service_queue.app run --arrival-rate LAMBDA [--gui]
#
# The other subcommands start one component each, for debugging or for
# running the pieces on different machines.

import argparse
import sys

from .mqtt_topics import DEFAULT_NAMESPACE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Service Queue Dispatcher (MQTT) - main entrypoint")
    sub = parser.add_subparsers(dest="cmd", required=True)

    def add_mqtt_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--mqtt-host", default="127.0.0.1")
        p.add_argument("--mqtt-port", type=int, default=1883)
        p.add_argument("--namespace", default=DEFAULT_NAMESPACE)

    p_run = sub.add_parser("run", help="Start dispatcher + counter agents + kiosk generator (optional GUI)")
    add_mqtt_args(p_run)
    p_run.add_argument("--config", default=None)
    p_run.add_argument("--arrival-rate", type=float, required=True, help="λ tickets/second")
    p_run.add_argument("--weights", default=None, help="service type weights, name=weight,...")
    p_run.add_argument("--seed", type=int, default=None)
    p_run.add_argument("--time-scale", type=float, default=0.01)
    p_run.add_argument("--gui", action="store_true", help="open the Tkinter display board")
    p_run.add_argument("--log-level", default="INFO")

    p_disp = sub.add_parser("dispatcher", help="Start the dispatcher only")
    add_mqtt_args(p_disp)
    p_disp.add_argument("--config", default=None)
    p_disp.add_argument("--log-level", default="INFO")

    p_cnt = sub.add_parser("counter", help="Start a single counter agent")
    add_mqtt_args(p_cnt)
    p_cnt.add_argument("--counter-number", type=int, required=True)
    p_cnt.add_argument("--time-scale", type=float, default=0.01)
    p_cnt.add_argument("--log-level", default="INFO")

    p_kiosk = sub.add_parser("kiosk", help="Draw one ticket")
    add_mqtt_args(p_kiosk)
    p_kiosk.add_argument("--service-type", required=True)

    p_display = sub.add_parser("display", help="Open the display board")
    add_mqtt_args(p_display)
    p_display.add_argument("--service-type", default=None)

    return parser


def _mqtt_argv(args: argparse.Namespace) -> list[str]:
    return ["--mqtt-host", args.mqtt_host, "--mqtt-port", str(args.mqtt_port), "--namespace", args.namespace]


def main() -> None:
    args = build_parser().parse_args()
    argv = _mqtt_argv(args)

    if args.cmd == "run":
        from .run_all import main as run

        argv += ["--arrival-rate", str(args.arrival_rate), "--time-scale", str(args.time_scale)]
        argv += ["--log-level", args.log_level]
        if args.config:
            argv += ["--config", args.config]
        if args.weights:
            argv += ["--weights", args.weights]
        if args.seed is not None:
            argv += ["--seed", str(args.seed)]
        if args.gui:
            argv += ["--gui"]
    elif args.cmd == "dispatcher":
        from .dispatcher import main as run

        argv += ["--log-level", args.log_level]
        if args.config:
            argv += ["--config", args.config]
    elif args.cmd == "counter":
        from .counter_agent import main as run

        argv += [
            "--counter-number",
            str(args.counter_number),
            "--time-scale",
            str(args.time_scale),
            "--log-level",
            args.log_level,
        ]
    elif args.cmd == "kiosk":
        from .kiosk import main as run

        argv += ["--service-type", args.service_type]
    else:
        from .display import main as run

        if args.service_type:
            argv += ["--service-type", args.service_type]

    _dispatch_to_module_main(run, argv)


def _dispatch_to_module_main(module_main, argv: list[str]) -> None:
    old_argv = sys.argv[:]
    try:
        sys.argv = [old_argv[0], *argv]
        module_main()
    finally:
        sys.argv = old_argv


if __name__ == "__main__":
    main()
