"""
One-way push notifications over Server-Sent Events.

Usage:
    relay-push-server

Test with curl:
    curl -N http://localhost:3000/events
"""

import logging
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import anyio
import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.routing import Route

from starlette_relay import config
from starlette_relay.event import ServerSentEvent
from starlette_relay.sse import EventSourceResponse

_log = logging.getLogger(__name__)


def make_notification(message: str) -> dict:
    return {"msg": message, "time": datetime.now(timezone.utc).isoformat()}


async def notification_stream(
    interval: float = config.PUSH_INTERVAL,
    message: str = config.PUSH_MESSAGE,
    limit: Optional[int] = None,
) -> AsyncIterator[ServerSentEvent]:
    """Emit one timestamped notification every ``interval`` seconds.

    The first notification is sent after one full interval. Runs forever
    unless ``limit`` is given.
    """
    sent = 0
    while limit is None or sent < limit:
        await anyio.sleep(interval)
        _log.info("Sending message to client")
        yield ServerSentEvent.json(make_notification(message), sep="\n")
        sent += 1


def create_app(
    interval: float = config.PUSH_INTERVAL,
    message: str = config.PUSH_MESSAGE,
    limit: Optional[int] = None,
) -> Starlette:
    async def events(request: Request) -> EventSourceResponse:
        _log.debug("Subscriber connected: %s", request.client)
        return EventSourceResponse(
            notification_stream(interval, message, limit), sep="\n"
        )

    return Starlette(routes=[Route("/events", endpoint=events)])


app = create_app()


def main() -> None:
    config.configure_logging()
    _log.info("SSE Server running at http://%s:%d", config.HOST, config.PUSH_PORT)
    uvicorn.run(app, host=config.HOST, port=config.PUSH_PORT, log_level="info")


if __name__ == "__main__":
    main()
