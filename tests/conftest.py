import logging
import time
from typing import List, Optional, Union

import pytest
from starlette.testclient import TestClient

from starlette_relay import chat
from starlette_relay.connection import Connection
from starlette_relay.relay import BroadcastRelay
from starlette_relay.sse import AppStatus

_log = logging.getLogger(__name__)
log_fmt = r"%(asctime)-15s %(levelname)s %(name)s %(funcName)s:%(lineno)d %(message)s"
datefmt = "%Y-%m-%d %H:%M:%S"
logging.basicConfig(format=log_fmt, level=logging.DEBUG, datefmt=datefmt)

logging.getLogger("httpx").setLevel(logging.INFO)
logging.getLogger("httpcore").setLevel(logging.INFO)


@pytest.fixture
def anyio_backend():
    """Exclude trio from tests"""
    return "asyncio"


@pytest.fixture
def reset_appstatus_event():
    # avoid: RuntimeError: <asyncio.locks.Event object at 0x1046a0a30 [unset]> is bound to a different event loop
    AppStatus.should_exit = False
    AppStatus.should_exit_event = None
    yield
    AppStatus.should_exit = False
    AppStatus.should_exit_event = None


class FakePeer:
    """Transport stand-in: records what was sent, optionally fails."""

    def __init__(self, name: str, fail_with: Optional[Exception] = None):
        self.name = name
        self.fail_with = fail_with
        self.received: List[Union[str, bytes]] = []

    async def send(self, payload: Union[str, bytes]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.received.append(payload)

    def connection(self, **kwargs) -> Connection:
        return Connection(self.send, name=self.name, **kwargs)


@pytest.fixture
def peer_factory():
    return FakePeer


@pytest.fixture
def relay():
    return BroadcastRelay()


@pytest.fixture
def chat_app():
    return chat.create_app()


@pytest.fixture
def chat_client(chat_app):
    with TestClient(app=chat_app) as client:
        yield client


@pytest.fixture
def wait_for_members():
    """Block until the server side has registered ``expected`` connections."""

    def wait(relay: BroadcastRelay, expected: int, timeout: float = 2.0):
        deadline = time.monotonic() + timeout
        while relay.registry.size != expected:
            if time.monotonic() > deadline:
                raise AssertionError(
                    f"expected {expected} members, have {relay.registry.size}"
                )
            time.sleep(0.01)

    return wait
