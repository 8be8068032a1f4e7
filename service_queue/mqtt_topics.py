"""MQTT topic helpers.

We keep topic construction in one place so all components agree on naming.

Topic layout under a configurable namespace (default: `queue/v0`):

Request/response:
- `<ns>/dispatcher/requests`
- `<ns>/dispatcher/responses/<client_id>`

Event fan-out:
- `<ns>/events/<event_type>`
    Every domain event. Displays subscribe to `<ns>/events/+`.
- `<ns>/groups/<service_type_id>/<event_type>`
    Ticket events again, scoped to one service type, for observers that only
    care about e.g. the VIP line.

Broadcast:
- `<ns>/status/updates`
    Periodic aggregated snapshot (queue lengths + counters).

Run independent demos on a shared broker by changing the namespace.
"""

from __future__ import annotations

DEFAULT_NAMESPACE = "queue/v0"


def dispatcher_requests(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/dispatcher/requests"


def dispatcher_responses(client_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/dispatcher/responses/{client_id}"


def event_topic(event_type: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/events/{event_type}"


def all_events(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/events/+"


def group_event_topic(service_type_id: str, event_type: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/groups/{service_type_id}/{event_type}"


def group_events(service_type_id: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    """Wildcard subscription for every event of one service-type group."""
    return f"{namespace}/groups/{service_type_id}/+"


def status_updates(namespace: str = DEFAULT_NAMESPACE) -> str:
    return f"{namespace}/status/updates"
