"""Process-wide monotonic integer id allocation."""

import threading


class IdGenerator:
    """Thread-safe auto-incrementing id source.

    Components, properties and resources all draw from the same generator so
    ids stay unique across entity kinds.
    """

    def __init__(self, start: int = 1):
        self._lock = threading.Lock()
        self._next = start

    def next_id(self) -> int:
        with self._lock:
            value = self._next
            self._next += 1
        return value

    def peek(self) -> int:
        """Return the id the next call to next_id() will hand out."""
        with self._lock:
            return self._next


default_ids = IdGenerator()
