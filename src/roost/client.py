"""Client side of the worker wire protocol.

Usage::

    client = ServiceClient.for_service("home", config, token=guard.token)
    client.request("GET", "/")          # {"message": "Hello World!"}

    send_request("/tmp/service/service_home.sock", "GET", "/user/42")
"""

from __future__ import annotations

import json
import socket
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from roost.config import RuntimeConfig
from roost.errors import TransportError
from roost.server.framing import DEFAULT_CHUNK_SIZE, encode_message


class ServiceClient:
    """Sends one request per connection to a worker socket.

    After writing the request the client half-closes its side, so the
    worker sees EOF even when the request is an exact multiple of the
    chunk size. The response is read until the worker closes.
    """

    __slots__ = ("chunk_size", "socket_path", "timeout", "token")

    def __init__(
        self,
        socket_path: str | Path,
        *,
        token: str | None = None,
        timeout: float = 5.0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.socket_path = Path(socket_path)
        self.token = token
        self.timeout = timeout
        self.chunk_size = chunk_size

    @classmethod
    def for_service(
        cls,
        name: str,
        config: RuntimeConfig | None = None,
        *,
        token: str | None = None,
    ) -> ServiceClient:
        config = config or RuntimeConfig()
        return cls(
            config.socket_path(name),
            token=token,
            timeout=config.socket_timeout,
            chunk_size=config.chunk_size,
        )

    def build_message(
        self,
        method: str,
        path: str,
        data: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        message: dict[str, Any] = {"path": path, "method": method.upper()}
        if self.token is not None:
            message["auth_token"] = self.token
        message["data"] = dict(data or {})
        return message

    def request(
        self,
        method: str = "GET",
        path: str = "/",
        data: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded response."""
        payload = encode_message(self.build_message(method, path, data))
        raw = self._exchange(payload)
        if not raw:
            msg = f"Empty response from {self.socket_path}"
            raise TransportError(msg)
        return _decode_response(raw)

    def _exchange(self, payload: bytes) -> bytes:
        chunks: list[bytes] = []
        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
                sock.settimeout(self.timeout)
                sock.connect(str(self.socket_path))
                sock.sendall(payload)
                sock.shutdown(socket.SHUT_WR)
                while chunk := sock.recv(self.chunk_size):
                    chunks.append(chunk)
        except OSError as exc:
            msg = f"Request to {self.socket_path} failed: {exc}"
            raise TransportError(msg) from exc
        return b"".join(chunks)


def _decode_response(raw: bytes) -> Any:
    # Responses may be any JSON value; only requests must be objects.
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        msg = f"Invalid JSON response: {exc}"
        raise TransportError(msg) from exc


def send_request(
    socket_path: str | Path,
    method: str = "GET",
    path: str = "/",
    data: Mapping[str, Any] | None = None,
    *,
    token: str | None = None,
    timeout: float = 5.0,
) -> Any:
    """One-shot helper around ``ServiceClient.request()``."""
    return ServiceClient(socket_path, token=token, timeout=timeout).request(method, path, data)
