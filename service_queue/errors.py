"""Domain errors and the shared error envelope.

Core components raise the exceptions below; the MQTT adapter turns them into
`ErrorResponse` messages so kiosks, counters and displays all see the same
error shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class DispatchError(Exception):
    """Base class for every failure the dispatcher reports to a caller."""

    code = "dispatch_error"


class NotFoundError(DispatchError):
    code = "not_found"


class InvalidStateError(DispatchError):
    code = "invalid_state"


class UnknownServiceType(NotFoundError):
    code = "unknown_service_type"

    def __init__(self, service_type_id: str) -> None:
        super().__init__(f"Unknown or inactive service type: {service_type_id!r}")
        self.service_type_id = service_type_id


class UnknownCounter(NotFoundError):
    code = "unknown_counter"

    def __init__(self, counter_number: int) -> None:
        super().__init__(f"Unknown counter: {counter_number}")
        self.counter_number = counter_number


class TicketNotAtAnyCounter(NotFoundError):
    code = "ticket_not_at_any_counter"

    def __init__(self, ticket_number: str) -> None:
        super().__init__(f"Ticket {ticket_number!r} is not being served at any counter")
        self.ticket_number = ticket_number


class CounterNotAvailable(InvalidStateError):
    code = "counter_not_available"

    def __init__(self, counter_number: int, status: str) -> None:
        super().__init__(f"Counter {counter_number} is not available (status={status})")
        self.counter_number = counter_number
        self.status = status


@dataclass(frozen=True)
class ErrorResponse:
    code: str
    message: str

    @classmethod
    def from_exception(cls, exc: DispatchError) -> "ErrorResponse":
        return cls(exc.code, str(exc))

    def to_message(self, *, corr_id: str | None = None) -> dict[str, Any]:
        msg: dict[str, Any] = {"type": "error", "code": self.code, "message": self.message}
        if corr_id is not None:
            msg["corr_id"] = corr_id
        return msg
