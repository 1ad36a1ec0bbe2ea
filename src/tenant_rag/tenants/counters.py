"""Version-stamped counters mutated only by compare-and-swap.

Many ingestion workers finish concurrently for the same tenant, so a
counter is never updated with read-then-write from caller code.  Each
change publishes a new :class:`CounterValue` with a bumped version; a
writer that raced with another retries against the fresh value.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class CounterValue:
    value: int
    version: int


class VersionedCounter:
    """An integer counter with lock-free reads and CAS-based writes."""

    def __init__(self, value: int = 0) -> None:
        self._current = CounterValue(value=value, version=0)
        self._cas_lock = threading.Lock()

    @property
    def current(self) -> CounterValue:
        return self._current

    @property
    def value(self) -> int:
        return self._current.value

    def compare_and_swap(self, expected: CounterValue, new_value: int) -> bool:
        """Install *new_value* only if the counter is still at *expected*."""
        with self._cas_lock:
            if self._current.version != expected.version:
                return False
            self._current = CounterValue(value=new_value, version=expected.version + 1)
            return True

    def add(self, delta: int, *, floor: int | None = 0) -> int:
        """Atomically add *delta*; the result never drops below *floor*."""
        while True:
            seen = self._current
            new_value = seen.value + delta
            if floor is not None:
                new_value = max(floor, new_value)
            if self.compare_and_swap(seen, new_value):
                return new_value

    def increment(self) -> int:
        return self.add(1)

    def decrement(self) -> int:
        return self.add(-1)

    def reset(self, value: int = 0) -> int:
        while True:
            seen = self._current
            if self.compare_and_swap(seen, value):
                return value
