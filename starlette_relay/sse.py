import logging
from datetime import datetime, timezone
from typing import (
    Any,
    AsyncIterable,
    Awaitable,
    Callable,
    Iterator,
    Mapping,
    Optional,
    Union,
)

import anyio
from starlette.concurrency import iterate_in_threadpool
from starlette.datastructures import MutableHeaders
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from starlette_relay.event import ServerSentEvent, ensure_bytes

_log = logging.getLogger(__name__)


class AppStatus:
    """Catch uvicorn's shutdown so endless event streams can stop."""

    should_exit = False
    should_exit_event: Optional[anyio.Event] = None
    original_handler: Optional[Callable] = None

    @staticmethod
    def handle_exit(*args, **kwargs):
        AppStatus.should_exit = True
        if AppStatus.should_exit_event is not None:
            AppStatus.should_exit_event.set()
        if AppStatus.original_handler is not None:
            AppStatus.original_handler(*args, **kwargs)


try:
    from uvicorn.main import Server

    AppStatus.original_handler = Server.handle_exit
    Server.handle_exit = AppStatus.handle_exit  # type: ignore
except ImportError:
    _log.debug("Uvicorn not installed. Streams will not stop on server shutdown.")

Content = Union[str, bytes, dict, ServerSentEvent, Any]
ContentStream = Union[AsyncIterable[Content], Iterator[Content]]


class EventSourceResponse(Response):
    """
    Streaming ``text/event-stream`` response for one-way server push.
    """

    DEFAULT_PING_INTERVAL = 15
    DEFAULT_SEPARATOR = "\r\n"
    media_type = "text/event-stream"

    def __init__(
        self,
        content: ContentStream,
        status_code: int = 200,
        headers: Optional[Mapping[str, str]] = None,
        ping: Optional[float] = None,
        sep: Optional[str] = None,
    ) -> None:
        if sep not in (None, "\r\n", "\r", "\n"):
            raise ValueError(f"sep must be one of: \\r\\n, \\r, \\n, got: {sep!r}")
        self.sep = sep or self.DEFAULT_SEPARATOR

        if isinstance(content, AsyncIterable):
            self.body_iterator = content
        else:
            self.body_iterator = iterate_in_threadpool(content)

        self.status_code = status_code
        self.background = None

        _headers = MutableHeaders()
        if headers is not None:
            _headers.update(headers)
        _headers.setdefault("Cache-Control", "no-cache")
        _headers["Connection"] = "keep-alive"
        _headers["X-Accel-Buffering"] = "no"
        self.init_headers(_headers)

        ping = self.DEFAULT_PING_INTERVAL if ping is None else ping
        if ping < 0:
            raise ValueError("ping interval must not be negative")
        self.ping_interval = ping

        self.active = True
        self._send_lock = anyio.Lock()

    async def _stream_response(self, send: Send) -> None:
        await send(
            {
                "type": "http.response.start",
                "status": self.status_code,
                "headers": self.raw_headers,
            }
        )
        try:
            async for data in self.body_iterator:
                chunk = ensure_bytes(data, self.sep)
                _log.debug("chunk: %s", chunk)
                async with self._send_lock:
                    await send(
                        {"type": "http.response.body", "body": chunk, "more_body": True}
                    )
        finally:
            # closing frame goes out even when the stream is cancelled,
            # unless the client is already gone
            with anyio.CancelScope(shield=True):
                async with self._send_lock:
                    if self.active:
                        self.active = False
                        await send(
                            {
                                "type": "http.response.body",
                                "body": b"",
                                "more_body": False,
                            }
                        )

    async def _listen_for_disconnect(self, receive: Receive) -> None:
        while self.active:
            message = await receive()
            if message["type"] == "http.disconnect":
                _log.debug("Got event: http.disconnect. Stop streaming.")
                self.active = False
                break

    @staticmethod
    async def _listen_for_exit_signal() -> None:
        if AppStatus.should_exit:
            return
        if AppStatus.should_exit_event is None:
            AppStatus.should_exit_event = anyio.Event()
        # may have flipped while the event was being created
        if AppStatus.should_exit:
            return
        await AppStatus.should_exit_event.wait()

    async def _ping(self, send: Send) -> None:
        # a zero interval disables keepalive pings
        if not self.ping_interval:
            await anyio.sleep_forever()
        while self.active:
            await anyio.sleep(self.ping_interval)
            ping = ServerSentEvent(
                comment=f"ping - {datetime.now(timezone.utc)}", sep=self.sep
            ).encode()
            _log.debug("ping: %s", ping)
            async with self._send_lock:
                if self.active:
                    await send(
                        {"type": "http.response.body", "body": ping, "more_body": True}
                    )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        async with anyio.create_task_group() as task_group:

            async def cancel_on_finish(coro: Callable[[], Awaitable[None]]):
                await coro()
                task_group.cancel_scope.cancel()

            task_group.start_soon(cancel_on_finish, lambda: self._stream_response(send))
            task_group.start_soon(cancel_on_finish, lambda: self._ping(send))
            task_group.start_soon(cancel_on_finish, self._listen_for_exit_signal)
            task_group.start_soon(
                cancel_on_finish, lambda: self._listen_for_disconnect(receive)
            )
