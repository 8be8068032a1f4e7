"""Real-time multi-counter service queue dispatcher (MQTT-based).

Customers draw numbered tickets for a service type, staffed counters pull the
next eligible ticket, and displays follow every change live. MQTT pub/sub (via
a broker like Mosquitto) connects:
- the Dispatcher service (owns the queues and counters)
- Counter terminal agents
- Kiosk clients and an optional Poisson traffic generator
- Display boards

The queue-assignment core (`engine.DispatchEngine`) has no MQTT dependency.
"""

from .engine import DispatchEngine
from .errors import (
    CounterNotAvailable,
    DispatchError,
    TicketNotAtAnyCounter,
    UnknownCounter,
    UnknownServiceType,
)
from .models import Counter, CounterStatus, ServiceTypeDef, Ticket, TicketStatus

__all__ = [
    "Counter",
    "CounterNotAvailable",
    "CounterStatus",
    "DispatchEngine",
    "DispatchError",
    "ServiceTypeDef",
    "Ticket",
    "TicketNotAtAnyCounter",
    "TicketStatus",
    "UnknownCounter",
    "UnknownServiceType",
]
