from __future__ import annotations

# Ticket display board (Tkinter).
#
# Shows what a waiting-room screen would: the most recent calls ("A261019004
# -> Counter 3"), each counter's state, and how many tickets wait per service.
#
# Architecture:
# - MQTT callbacks run on paho's network thread.
# - Tkinter must be updated from the main UI thread.
# - Incoming messages go into a Queue that the UI drains via `root.after(...)`.
#
# With --service-type the board follows one service-type group only and shows
# just that group's calls.

import argparse
import queue
import time
import tkinter as tk
from collections import deque
from tkinter import ttk
from typing import Any, cast

from .mqtt_client import MqttClient
from .mqtt_topics import DEFAULT_NAMESPACE, all_events, group_events, status_updates

RECENT_CALLS = 8


class DisplayBoard:
    def __init__(
        self,
        *,
        mqtt_host: str,
        mqtt_port: int,
        namespace: str,
        service_type: str | None = None,
        refresh_ms: int = 250,
    ) -> None:
        self.mqtt_host = mqtt_host
        self.mqtt_port = mqtt_port
        self.namespace = namespace
        self.service_type = service_type
        self.refresh_ms = refresh_ms

        self.root = tk.Tk()
        title = "Now Serving" if service_type is None else f"Now Serving - {service_type}"
        self.root.title(title)
        self.root.geometry("760x480")

        self.info_var = tk.StringVar(value="Connecting...")
        ttk.Label(self.root, textvariable=self.info_var).pack(fill=cast(Any, tk.X), padx=10, pady=(10, 5))

        # Latest calls, newest first.
        self.calls_list = tk.Listbox(self.root, height=RECENT_CALLS, font=("TkDefaultFont", 16))
        self.calls_list.pack(fill=cast(Any, tk.X), padx=10, pady=5)

        cols = ("number", "name", "status", "current_ticket")
        self.tree = ttk.Treeview(self.root, columns=cols, show="headings", height=8)
        self.tree.heading("number", text="Counter")
        self.tree.heading("name", text="Name")
        self.tree.heading("status", text="Status")
        self.tree.heading("current_ticket", text="Serving")
        self.tree.column("number", width=80, anchor=cast(Any, tk.E))
        self.tree.column("name", width=200, anchor=cast(Any, tk.W))
        self.tree.column("status", width=120, anchor=cast(Any, tk.W))
        self.tree.column("current_ticket", width=180, anchor=cast(Any, tk.W))
        self.tree.pack(fill=cast(Any, tk.BOTH), expand=True, padx=10, pady=5)

        self.queues_var = tk.StringVar(value="")
        ttk.Label(self.root, textvariable=self.queues_var).pack(fill=cast(Any, tk.X), padx=10, pady=(0, 10))

        self._inbox: "queue.Queue[dict[str, Any]]" = queue.Queue(maxsize=200)
        self._mqtt = MqttClient(client_id=f"display-{int(time.time())}", host=mqtt_host, port=mqtt_port)

        self._recent_calls: deque[str] = deque(maxlen=RECENT_CALLS)
        self._last_snapshot_ts: float | None = None

        self.root.protocol("WM_DELETE_WINDOW", self.close)

    def start(self) -> None:
        # If the broker isn't reachable, keep the window up and say so.
        try:
            self._mqtt.start()
            self._mqtt.subscribe(status_updates(self.namespace))
            if self.service_type is None:
                self._mqtt.subscribe(all_events(self.namespace))
            else:
                self._mqtt.subscribe(group_events(self.service_type, self.namespace))
            self._mqtt.add_handler(self._on_mqtt_message)
            self.info_var.set(f"Connected to MQTT {self.mqtt_host}:{self.mqtt_port} | namespace={self.namespace}")
        except OSError as e:
            self.info_var.set(f"MQTT connection failed: {e}")

        self.root.after(cast(Any, self.refresh_ms), self._drain_inbox)
        self.root.mainloop()

    def close(self) -> None:
        try:
            self._mqtt.stop()
        finally:
            self.root.destroy()

    # -------------------- MQTT thread callback --------------------

    def _on_mqtt_message(self, topic: str, msg: dict[str, Any]) -> None:
        if msg.get("type") not in ("status_update", "ticket_called"):
            return
        try:
            self._inbox.put_nowait(msg)
        except queue.Full:
            # UI is behind; the next snapshot catches it up.
            pass

    # -------------------- UI thread polling --------------------

    def _drain_inbox(self) -> None:
        latest_status: dict[str, Any] | None = None
        while True:
            try:
                msg = self._inbox.get_nowait()
            except queue.Empty:
                break
            if msg["type"] == "ticket_called":
                self._recent_calls.appendleft(f"{msg.get('ticket_number')}  ->  Counter {msg.get('counter_number')}")
            else:
                latest_status = msg

        self.calls_list.delete(0, cast(Any, tk.END))
        for line in self._recent_calls:
            self.calls_list.insert(cast(Any, tk.END), line)

        if latest_status is not None:
            self._last_snapshot_ts = time.time()
            self._render_status(latest_status)
        elif self._last_snapshot_ts is not None:
            age = max(0.0, time.time() - self._last_snapshot_ts)
            self.info_var.set(
                f"Connected to MQTT {self.mqtt_host}:{self.mqtt_port} | namespace={self.namespace} | last update {age:0.1f}s ago"
            )

        self.root.after(cast(Any, self.refresh_ms), self._drain_inbox)

    def _render_status(self, status_msg: dict[str, Any]) -> None:
        for item in self.tree.get_children():
            self.tree.delete(item)

        for c in status_msg.get("counters") or []:
            if not isinstance(c, dict):
                continue
            if self.service_type is not None and self.service_type not in c.get("service_types", []):
                continue
            self.tree.insert(
                "",
                cast(Any, tk.END),
                values=(c.get("number"), c.get("name"), c.get("status"), c.get("current_ticket") or "-"),
            )

        queues = status_msg.get("queues") or {}
        if self.service_type is not None:
            queues = {self.service_type: queues.get(self.service_type, 0)}
        self.queues_var.set("Waiting: " + ", ".join(f"{sid} {n}" for sid, n in queues.items()))


def main() -> None:
    parser = argparse.ArgumentParser(description="Ticket display board (Tkinter + MQTT)")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument("--service-type", default=None, help="follow a single service-type group")
    parser.add_argument("--refresh-ms", type=int, default=250)
    args = parser.parse_args()

    board = DisplayBoard(
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        namespace=args.namespace,
        service_type=args.service_type,
        refresh_ms=args.refresh_ms,
    )
    board.start()


if __name__ == "__main__":
    main()
