import enum
import logging
from typing import Awaitable, Callable, Optional, Union

import anyio

from starlette_relay import config

_log = logging.getLogger(__name__)

Payload = Union[str, bytes]
SendCallable = Callable[[Payload], Awaitable[None]]


class ConnectionState(enum.IntEnum):
    CONNECTING = 0
    OPEN = 1
    CLOSING = 2
    CLOSED = 3


class Connection:
    """Handle to one bidirectional peer.

    Outgoing messages are not written to the transport directly: ``deliver``
    drops them into a bounded FIFO outbox and ``run_writer`` drains it, one
    message at a time, through ``send``. A full outbox drops the new message
    for this peer only.

    The outbox is an anyio memory stream, so ``deliver``, ``run_writer`` and
    the ``mark_*`` transitions must run on the event loop thread. From a
    worker thread go through ``anyio.from_thread.run_sync``.
    """

    def __init__(
        self,
        send: SendCallable,
        *,
        name: Optional[str] = None,
        max_buffer_size: int = config.OUTBOX_SIZE,
    ) -> None:
        self._send = send
        self.name = name or f"conn-{id(self):x}"
        self.state = ConnectionState.CONNECTING
        self._outbox_send, self._outbox_receive = anyio.create_memory_object_stream(
            max_buffer_size
        )

    def __repr__(self) -> str:
        return f"<Connection {self.name} {self.state.name.lower()}>"

    @property
    def is_open(self) -> bool:
        return self.state is ConnectionState.OPEN

    def _advance(self, state: ConnectionState) -> None:
        # lifecycle only moves forward
        if state > self.state:
            _log.debug("%s: %s -> %s", self.name, self.state.name, state.name)
            self.state = state

    def mark_open(self) -> None:
        self._advance(ConnectionState.OPEN)

    def mark_closing(self) -> None:
        self._advance(ConnectionState.CLOSING)

    def mark_closed(self) -> None:
        self._advance(ConnectionState.CLOSED)
        self._outbox_send.close()

    def deliver(self, payload: Payload) -> bool:
        """Queue ``payload`` for this peer without waiting. Returns False if it was not queued."""
        if not self.is_open:
            return False
        try:
            self._outbox_send.send_nowait(payload)
        except anyio.WouldBlock:
            _log.warning("%s: outbox full, dropping message", self.name)
            return False
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            return False
        return True

    async def run_writer(self) -> None:
        """Drain the outbox into the transport until it is closed or a send fails."""
        async with self._outbox_receive:
            async for payload in self._outbox_receive:
                if not self.is_open:
                    break
                try:
                    await self._send(payload)
                except Exception as exc:
                    _log.warning("%s: send failed, closing: %r", self.name, exc)
                    self.mark_closing()
                    break
