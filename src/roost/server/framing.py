"""Wire framing: JSON messages over a stream socket.

There is no length prefix. A request is read in ``chunk_size`` pieces
until a piece comes back shorter than ``chunk_size`` or the peer
half-closes its write side. The response is one compact JSON document,
after which the server closes the connection.

A request whose encoded size is an exact multiple of ``chunk_size`` is
only terminated by EOF, so clients must ``shutdown(SHUT_WR)`` after
writing. ``roost.client`` does.
"""

import json
import logging
import select
import socket
import time
from collections.abc import Callable
from typing import Any

from roost.errors import (
    EmptyMessageError,
    MalformedMessageError,
    ReceiveTimeoutError,
    TransportError,
)

logger = logging.getLogger("roost.server")

DEFAULT_CHUNK_SIZE = 4096
DEFAULT_TIMEOUT = 30.0


def encode_message(payload: Any) -> bytes:
    """Serialize *payload* as compact UTF-8 JSON.

    Raises ``TransportError`` when the value is not JSON-serializable.
    """
    try:
        text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        msg = f"Response is not JSON-serializable: {exc}"
        raise TransportError(msg) from exc
    return text.encode("utf-8")


def decode_message(raw: bytes) -> dict[str, Any]:
    """Parse one request body into a message object."""
    if not raw:
        msg = "Empty message received"
        raise EmptyMessageError(msg)
    try:
        message = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        msg = f"Invalid JSON: {exc}"
        raise MalformedMessageError(msg) from exc
    if not isinstance(message, dict):
        msg = f"Message must be a JSON object, got {type(message).__name__}"
        raise MalformedMessageError(msg)
    return message


def receive_message(
    conn: socket.socket,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    timeout: float = DEFAULT_TIMEOUT,
    clock: Callable[[], float] = time.monotonic,
) -> bytes:
    """Read one request from *conn* and return the raw bytes.

    The connection is switched to non-blocking mode for the read and
    its previous timeout is restored afterwards. When no data is
    available the call waits for readability, up to *timeout* seconds
    in total.

    Raises ``ReceiveTimeoutError`` when the budget runs out and
    ``TransportError`` for any other socket failure.
    """
    deadline = clock() + timeout
    chunks: list[bytes] = []

    previous_timeout = conn.gettimeout()
    conn.setblocking(False)
    try:
        while True:
            try:
                chunk = conn.recv(chunk_size)
            except BlockingIOError:
                remaining = deadline - clock()
                if remaining <= 0:
                    msg = f"Timeout while receiving message (>{timeout:g}s)"
                    raise ReceiveTimeoutError(msg) from None
                select.select([conn], [], [], remaining)
                continue
            except OSError as exc:
                msg = f"Error while reading message: {exc}"
                raise TransportError(msg) from exc

            if not chunk:
                break
            chunks.append(chunk)
            if len(chunk) < chunk_size:
                break
    finally:
        conn.settimeout(previous_timeout)

    return b"".join(chunks)


def send_message(conn: socket.socket, payload: Any) -> int:
    """Write *payload* to *conn* as one JSON document.

    Partial writes are re-issued from the first unsent byte. Returns the
    number of bytes written.
    """
    data = encode_message(payload)
    view = memoryview(data)
    sent = 0
    while sent < len(data):
        try:
            written = conn.send(view[sent:])
        except OSError as exc:
            msg = f"Error while sending message: {exc}"
            raise TransportError(msg) from exc
        if written == 0:
            msg = "Connection closed while sending message"
            raise TransportError(msg)
        sent += written
    return sent
