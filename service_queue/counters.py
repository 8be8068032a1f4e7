from __future__ import annotations

# Counter registry.
#
# Holds every counter and enforces its state transitions:
#   available -> serving     (set_serving)
#   serving   -> available   (set_available)
#   available <-> closed/break (set_status, administrative)
#
# The registry has no lock of its own. It is owned by the DispatchEngine and
# only ever touched while the engine lock is held.

from typing import Iterable

from .errors import CounterNotAvailable, InvalidStateError, UnknownCounter
from .models import Counter, CounterStatus

ADMIN_STATUSES = frozenset({CounterStatus.AVAILABLE, CounterStatus.CLOSED, CounterStatus.BREAK})


class CounterRegistry:
    def __init__(self, counters: Iterable[Counter]) -> None:
        self._counters: dict[int, Counter] = {}
        for c in counters:
            if c.number <= 0:
                raise ValueError(f"counter number must be positive, got {c.number}")
            if c.number in self._counters:
                raise ValueError(f"duplicate counter number: {c.number}")
            if not c.service_types:
                raise ValueError(f"counter {c.number} has no service types")
            if (c.status == CounterStatus.SERVING) != (c.current_ticket is not None):
                raise ValueError(f"counter {c.number}: current_ticket must be set iff serving")
            # Keep our own copy so the caller's objects stay detached.
            self._counters[c.number] = c.snapshot()

    def __len__(self) -> int:
        return len(self._counters)

    def get(self, number: int) -> Counter:
        try:
            return self._counters[number]
        except KeyError:
            raise UnknownCounter(number) from None

    def list_all(self) -> list[Counter]:
        return [self._counters[n] for n in sorted(self._counters)]

    def find_by_ticket(self, ticket_number: str) -> Counter | None:
        for c in self._counters.values():
            if c.current_ticket == ticket_number:
                return c
        return None

    def count_available_for(self, service_type_id: str) -> int:
        return sum(
            1
            for c in self._counters.values()
            if c.status == CounterStatus.AVAILABLE and c.can_serve(service_type_id)
        )

    # -------------------- transitions --------------------

    def set_serving(self, number: int, ticket_number: str) -> Counter:
        c = self.get(number)
        if c.status != CounterStatus.AVAILABLE:
            raise CounterNotAvailable(number, c.status.value)
        c.status = CounterStatus.SERVING
        c.current_ticket = ticket_number
        return c

    def set_available(self, number: int) -> Counter:
        c = self.get(number)
        if c.status != CounterStatus.SERVING:
            raise InvalidStateError(f"Counter {number} is not serving (status={c.status.value})")
        c.status = CounterStatus.AVAILABLE
        c.current_ticket = None
        return c

    def set_status(self, number: int, status: CounterStatus) -> Counter:
        """Open, close or pause a counter that isn't serving anyone."""
        c = self.get(number)
        if status not in ADMIN_STATUSES:
            raise InvalidStateError(f"Counter status {status.value!r} can't be set directly")
        if c.status == CounterStatus.SERVING:
            raise InvalidStateError(
                f"Counter {number} is serving {c.current_ticket}; complete it first"
            )
        c.status = status
        return c
