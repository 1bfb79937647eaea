from starlette_relay.connection import Connection, ConnectionState
from starlette_relay.event import ServerSentEvent
from starlette_relay.registry import ConnectionRegistry
from starlette_relay.relay import BroadcastRelay
from starlette_relay.sse import EventSourceResponse

__all__ = [
    "BroadcastRelay",
    "Connection",
    "ConnectionRegistry",
    "ConnectionState",
    "EventSourceResponse",
    "ServerSentEvent",
]
__version__ = "0.1.0"
