import logging
from typing import AsyncIterable, Awaitable, Callable, Optional

import anyio

from starlette_relay.connection import Connection, Payload
from starlette_relay.registry import ConnectionRegistry

_log = logging.getLogger(__name__)


class BroadcastRelay:
    """Fan every message out to all other open connections.

    Architecture: each connection gets its own outbox (see ``Connection``).
    A broadcast only enqueues, so a slow or broken peer never holds up the
    sender or the remaining recipients. Delivery is at-most-once and
    best-effort; messages from one sender reach each recipient in the order
    they were received.
    """

    def __init__(self, registry: Optional[ConnectionRegistry] = None) -> None:
        self.registry = registry if registry is not None else ConnectionRegistry()

    def connection_opened(self, connection: Connection) -> None:
        connection.mark_open()
        self.registry.add(connection)

    def connection_closed(self, connection: Connection) -> None:
        connection.mark_closing()
        self.registry.remove(connection)
        connection.mark_closed()

    def on_message(self, sender: Connection, payload: Payload) -> int:
        """Relay ``payload`` to every open member except ``sender``.

        Returns the number of recipients the payload was queued for.
        """
        delivered = 0
        for recipient in self.registry.snapshot():
            # closing/closed peers are an expected race, not an error
            if recipient is sender or not recipient.is_open:
                continue
            try:
                if recipient.deliver(payload):
                    delivered += 1
            except Exception:
                _log.warning("Delivery to %r failed", recipient, exc_info=True)
        return delivered

    async def _consume(
        self, connection: Connection, inbound: AsyncIterable[Payload]
    ) -> None:
        try:
            async for payload in inbound:
                _log.debug("Received from %s: %s", connection.name, payload)
                self.on_message(connection, payload)
        except Exception as exc:
            _log.warning("%s: receive failed: %r", connection.name, exc)
        finally:
            connection.mark_closing()

    async def serve(
        self, connection: Connection, inbound: AsyncIterable[Payload]
    ) -> None:
        """Run one connection until its inbound stream ends or its transport fails.

        Two tasks per connection: one consumes ``inbound`` and hands each
        message to ``on_message``, the other drains the connection's outbox.
        Whichever finishes first cancels the other.
        """
        self.connection_opened(connection)
        try:
            async with anyio.create_task_group() as task_group:

                async def cancel_on_finish(coro: Callable[[], Awaitable[None]]):
                    await coro()
                    task_group.cancel_scope.cancel()

                task_group.start_soon(cancel_on_finish, connection.run_writer)
                task_group.start_soon(
                    cancel_on_finish, lambda: self._consume(connection, inbound)
                )
        finally:
            self.connection_closed(connection)
