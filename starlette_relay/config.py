"""Runtime settings, read once from the environment."""

import logging
import os

HOST = os.environ.get("RELAY_HOST", "localhost")

# chat relay (WebSocket)
CHAT_PORT = int(os.environ.get("RELAY_CHAT_PORT", "4000"))
OUTBOX_SIZE = int(os.environ.get("RELAY_OUTBOX_SIZE", "100"))
USER = os.environ.get("RELAY_USER", "user2")

# push notifications (SSE)
PUSH_PORT = int(os.environ.get("RELAY_PUSH_PORT", "3000"))
PUSH_INTERVAL = float(os.environ.get("RELAY_PUSH_INTERVAL", "5.0"))
PUSH_MESSAGE = os.environ.get("RELAY_PUSH_MESSAGE", "Hello from fetch SSE")

LOG_LEVEL = os.environ.get("RELAY_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = r"%(asctime)-15s %(levelname)s %(name)s %(funcName)s:%(lineno)d %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(format=LOG_FORMAT, level=level, datefmt=LOG_DATEFMT)
    logging.getLogger("httpx").setLevel(logging.INFO)
    logging.getLogger("httpcore").setLevel(logging.INFO)
