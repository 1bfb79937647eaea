"""
Terminal clients for both demos.

Usage:
    relay-chat-client     # type lines, see what the other clients type
    relay-push-client     # print notifications pushed by relay-push-server
"""

import json
import logging
import os
import sys
from typing import Any, AsyncIterator, Callable, Optional

import anyio
import anyio.to_thread
import httpx
import websockets

from starlette_relay import config

_log = logging.getLogger(__name__)

Printer = Callable[[str], Any]


def _write_prompt(prompt: str) -> None:
    sys.stdout.write(prompt)
    sys.stdout.flush()


async def line_source(
    prompt: str, readline: Callable[[str], str] = input
) -> AsyncIterator[str]:
    """Yield non-blank lines typed on the terminal until EOF."""
    while True:
        try:
            line = await anyio.to_thread.run_sync(
                readline, prompt, abandon_on_cancel=True
            )
        except EOFError:
            return
        if not line.strip():
            continue
        yield line


async def run_chat_client(
    url: str,
    user: str = config.USER,
    lines: Optional[AsyncIterator[str]] = None,
    out: Printer = print,
    write_prompt: Printer = _write_prompt,
) -> None:
    prompt = f"{user}> "
    lines = lines if lines is not None else line_source(prompt)

    async with websockets.connect(url) as ws:
        out(f"{user} connected to {url}")

        async with anyio.create_task_group() as task_group:

            async def send_lines() -> None:
                try:
                    async for line in lines:
                        await ws.send(f"{user}: {line}")
                except websockets.ConnectionClosed:
                    _log.debug("Connection closed while sending")

            task_group.start_soon(send_lines)
            try:
                async for message in ws:
                    out(f"\n[recv] {message}")
                    write_prompt(prompt)
            except websockets.ConnectionClosed as exc:
                _log.warning("WebSocket error: %s", exc)
            task_group.cancel_scope.cancel()

    out("Connection closed")


def parse_data_line(line: str) -> Optional[Any]:
    """JSON payload of an SSE ``data:`` line, None for any other line."""
    if not line.startswith("data:"):
        return None
    return json.loads(line[len("data:") :].strip())


async def _print_events(client: httpx.AsyncClient, url: str, out: Printer) -> None:
    async with client.stream(
        "GET", url, headers={"Accept": "text/event-stream"}
    ) as response:
        response.raise_for_status()
        async for line in response.aiter_lines():
            out(f"Received chunk: {line}")
            try:
                payload = parse_data_line(line)
            except ValueError:
                _log.warning("Skipping malformed data line: %r", line)
                continue
            if payload is not None:
                out(f"Parsed Data: {payload}")
                out(f"All headers: {dict(response.headers)}")


async def run_push_client(
    url: str, out: Printer = print, client: Optional[httpx.AsyncClient] = None
) -> None:
    if client is not None:
        await _print_events(client, url, out)
        return
    async with httpx.AsyncClient(timeout=None) as client:
        await _print_events(client, url, out)


def chat_main() -> None:
    config.configure_logging()
    url = f"ws://{config.HOST}:{config.CHAT_PORT}"
    try:
        anyio.run(run_chat_client, url)
    except KeyboardInterrupt:
        pass
    sys.stdout.flush()
    logging.shutdown()
    # the input() worker thread is still blocked on stdin and would keep
    # the interpreter alive until the next line is typed
    os._exit(0)


def push_main() -> None:
    config.configure_logging()
    url = f"http://{config.HOST}:{config.PUSH_PORT}/events"
    try:
        anyio.run(run_push_client, url)
    except KeyboardInterrupt:
        pass
