"""
WebSocket chat relay: every frame is forwarded to all other clients.

Usage:
    relay-chat-server

Test with two terminals:
    relay-chat-client
"""

import logging
from typing import AsyncIterator, Optional

import uvicorn
from starlette.applications import Starlette
from starlette.routing import WebSocketRoute
from starlette.websockets import WebSocket, WebSocketState

from starlette_relay import config
from starlette_relay.connection import Connection, Payload
from starlette_relay.relay import BroadcastRelay

_log = logging.getLogger(__name__)


async def _iter_frames(websocket: WebSocket) -> AsyncIterator[Payload]:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            _log.debug("Got websocket.disconnect (code=%s)", message.get("code"))
            return
        text = message.get("text")
        yield text if text is not None else message["bytes"]


def _frame_sender(websocket: WebSocket):
    # binary frames go back out as binary, text as text
    async def send(payload: Payload) -> None:
        if isinstance(payload, bytes):
            await websocket.send_bytes(payload)
        else:
            await websocket.send_text(payload)

    return send


def create_app(
    relay: Optional[BroadcastRelay] = None, outbox_size: int = config.OUTBOX_SIZE
) -> Starlette:
    relay = relay if relay is not None else BroadcastRelay()

    async def chat(websocket: WebSocket) -> None:
        connection = Connection(
            _frame_sender(websocket),
            name=f"{websocket.client.host}:{websocket.client.port}"
            if websocket.client
            else None,
            max_buffer_size=outbox_size,
        )
        await websocket.accept()
        await relay.serve(connection, _iter_frames(websocket))
        if websocket.client_state is WebSocketState.CONNECTED:
            await websocket.close()

    app = Starlette(routes=[WebSocketRoute("/", endpoint=chat)])
    app.state.relay = relay
    return app


app = create_app()


def main() -> None:
    config.configure_logging()
    _log.info("WebSocket server listening on ws://%s:%d", config.HOST, config.CHAT_PORT)
    uvicorn.run(app, host=config.HOST, port=config.CHAT_PORT, log_level="info")


if __name__ == "__main__":
    main()
