from __future__ import annotations

# Ticket number generation.
#
# Format: <prefix><YYMMDD><NNN>, e.g. "A261019001".
#
# The sequence part is a counter kept per (prefix, day). It starts at 1 every
# day, is zero-padded to 3 digits, and simply grows wider after 999 instead of
# wrapping, so a number is never handed out twice in one process.

from datetime import date, datetime
from typing import Callable

Clock = Callable[[], datetime]

SEQUENCE_WIDTH = 3


def local_now() -> datetime:
    return datetime.now().astimezone()


def format_ticket_number(prefix: str, day: date, sequence: int) -> str:
    if sequence < 1:
        raise ValueError("sequence must be >= 1")
    return f"{prefix}{day:%y%m%d}{sequence:0{SEQUENCE_WIDTH}d}"


class TicketSequencer:
    """Monotonic ticket numbers per prefix per day.

    Not thread-safe on its own; the dispatch engine calls it under its lock.
    """

    def __init__(self, clock: Clock = local_now) -> None:
        self._clock = clock
        self._last: dict[tuple[str, date], int] = {}

    def next(self, prefix: str) -> str:
        if not prefix:
            raise ValueError("prefix must not be empty")
        today = self._clock().date()
        key = (prefix, today)
        seq = self._last.get(key, 0) + 1
        self._last[key] = seq

        # Past days can never be issued again.
        for stale in [k for k in self._last if k[1] < today]:
            del self._last[stale]

        return format_ticket_number(prefix, today, seq)

    def issued_today(self, prefix: str) -> int:
        return self._last.get((prefix, self._clock().date()), 0)
