import io
import json
import re
from typing import Any, Optional, Union


class ServerSentEvent:
    """
    Format one event of a ``text/event-stream`` body.
    """

    _LINE_SEP_EXPR = re.compile(r"\r\n|\r|\n")
    DEFAULT_SEPARATOR = "\r\n"

    def __init__(
        self,
        data: Optional[Any] = None,
        *,
        event: Optional[str] = None,
        id: Optional[str] = None,
        retry: Optional[int] = None,
        comment: Optional[str] = None,
        sep: Optional[str] = None,
    ) -> None:
        self.data = str(data) if data is not None else None
        self.event = event
        self.id = id
        self.retry = retry
        self.comment = comment
        self._sep = sep if sep is not None else self.DEFAULT_SEPARATOR

    @classmethod
    def json(cls, payload: Any, **kwargs: Any) -> "ServerSentEvent":
        """Event whose data field is ``payload`` serialized as compact JSON."""
        return cls(json.dumps(payload, separators=(",", ":")), **kwargs)

    def _field(self, buffer: io.StringIO, tag: str, value: str) -> None:
        buffer.write(f"{tag}: {value}{self._sep}")

    def encode(self) -> bytes:
        buffer = io.StringIO()

        if self.comment is not None:
            for line in self._LINE_SEP_EXPR.split(self.comment):
                buffer.write(f": {line}{self._sep}")

        # id and event name must stay on one line
        if self.id is not None:
            self._field(buffer, "id", self._LINE_SEP_EXPR.sub("", self.id))
        if self.event is not None:
            self._field(buffer, "event", self._LINE_SEP_EXPR.sub("", self.event))

        if self.data is not None:
            for line in self._LINE_SEP_EXPR.split(self.data):
                self._field(buffer, "data", line)

        if self.retry is not None:
            if not isinstance(self.retry, int):
                raise TypeError("retry argument must be int")
            self._field(buffer, "retry", str(self.retry))

        # blank line terminates the event
        buffer.write(self._sep)
        return buffer.getvalue().encode("utf-8")


def ensure_bytes(data: Union[bytes, dict, ServerSentEvent, Any], sep: str) -> bytes:
    if isinstance(data, bytes):
        return data
    if isinstance(data, ServerSentEvent):
        return data.encode()
    if isinstance(data, dict):
        return ServerSentEvent(**{**data, "sep": sep}).encode()
    return ServerSentEvent(data, sep=sep).encode()
