import logging
import threading
from typing import Any, Dict, Iterator, Tuple

_log = logging.getLogger(__name__)


class ConnectionRegistry:
    """Set of currently open connections.

    Membership is keyed on object identity, so two distinct handles that
    happen to compare equal are still tracked separately. Every mutation and
    every snapshot runs under one lock, so membership may also be read or
    changed from a worker thread. The connection lifecycle itself is not
    thread-safe (see ``Connection``).
    """

    def __init__(self) -> None:
        self._members: Dict[int, Any] = {}
        self._lock = threading.RLock()

    def add(self, connection: Any) -> bool:
        """Register a newly opened connection. Returns False if already present."""
        with self._lock:
            key = id(connection)
            if key in self._members:
                _log.debug("Ignoring duplicate registration of %r", connection)
                return False
            self._members[key] = connection
            size = len(self._members)
        _log.info("Client connected. Total: %d", size)
        return True

    def remove(self, connection: Any) -> bool:
        """Forget a connection. Returns False if it was not registered."""
        with self._lock:
            if self._members.pop(id(connection), None) is None:
                return False
            size = len(self._members)
        _log.info("Client disconnected. Total: %d", size)
        return True

    def snapshot(self) -> Tuple[Any, ...]:
        """Current membership, frozen at call time."""
        with self._lock:
            return tuple(self._members.values())

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._members)

    def __len__(self) -> int:
        return self.size

    def __contains__(self, connection: Any) -> bool:
        with self._lock:
            return self._members.get(id(connection)) is connection

    def __iter__(self) -> Iterator[Any]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} size={self.size}>"
