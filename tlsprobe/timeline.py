"""Append-only event timeline, offsets measured from a fixed start instant."""

import time
from dataclasses import dataclass, asdict
from typing import Any, Callable

NANOS_PER_SECOND = 1_000_000_000


@dataclass(frozen=True)
class Event:
    seconds: int
    nanos: int
    description: str
    metadata: Any = None

    @property
    def elapsed_ns(self) -> int:
        return self.seconds * NANOS_PER_SECOND + self.nanos

    @property
    def millis(self) -> int:
        return self.nanos // 1_000_000

    def to_dict(self) -> dict:
        return asdict(self)


class EventTimeline:
    """Ordered record of pipeline milestones.

    The timeline is owned by one pipeline and only touched from that
    pipeline's coroutine, so appends need no locking.
    """

    def __init__(self, clock: Callable[[], int] = time.monotonic_ns):
        self._clock = clock
        self._start = clock()
        self._events: list[Event] = []

    @property
    def start(self) -> int:
        return self._start

    @property
    def events(self) -> tuple:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(self.events)

    def _elapsed(self) -> tuple[int, int]:
        elapsed = max(self._clock() - self._start, 0)
        # Offsets never go backwards, even with a misbehaving clock
        if self._events and elapsed < self._events[-1].elapsed_ns:
            elapsed = self._events[-1].elapsed_ns
        return divmod(elapsed, NANOS_PER_SECOND)

    def _append(self, description: str, metadata: Any) -> Event:
        seconds, nanos = self._elapsed()
        event = Event(seconds=seconds, nanos=nanos, description=description, metadata=metadata)
        self._events.append(event)
        return event

    def add(self, description: str) -> Event:
        """Record a milestone with no metadata."""
        return self._append(description, None)

    def add_with_metadata(self, description: str, metadata: Any) -> Event:
        """Record a milestone carrying a structured payload."""
        return self._append(description, metadata)
