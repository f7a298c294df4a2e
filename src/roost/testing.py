"""Test client for roost applications.

Runs messages through the same pipeline as a socket worker
(``handle_message`` plus the worker's error mapping and JSON encoding)
without forking or opening sockets.
"""

import json
from collections.abc import Mapping
from typing import Any

from roost.app import App
from roost.security.token import TokenGuard
from roost.server.framing import encode_message
from roost.server.handler import error_response, handle_message


def assert_code(response: Any, code: int) -> None:
    """Assert *response* is a structured outcome carrying *code*."""
    assert isinstance(response, dict), f"Expected an outcome dict, got {response!r}"
    assert response.get("code") == code, (
        f"Expected code {code}, got {response.get('code')!r}.\nResponse: {response!r}"
    )


class TestClient:
    __test__ = False  # Tell pytest this is not a test class
    """In-process client for roost applications.

    Usage::

        client = TestClient(app)
        assert client.get("/") == {"message": "Hello World!"}

    Private routes need an identity: pass a guard and send its token::

        guard = TokenGuard("secret")
        client = TestClient(app, guard=guard, token="secret")

    With ``raise_errors=True`` handler exceptions propagate instead of
    being turned into the wire-level 401/403/500 bodies.
    """

    def __init__(
        self,
        app: App,
        *,
        guard: TokenGuard | None = None,
        token: str | None = None,
        raise_errors: bool = False,
    ) -> None:
        self.app = app
        self.guard = guard
        self.token = token
        self.raise_errors = raise_errors

    def request(
        self,
        method: str = "GET",
        path: str = "/",
        data: Mapping[str, Any] | None = None,
        *,
        token: str | None = None,
    ) -> Any:
        message: dict[str, Any] = {"path": path, "method": method.upper(), "data": dict(data or {})}
        token = token if token is not None else self.token
        if token is not None:
            message["auth_token"] = token

        try:
            response = handle_message(
                message,
                self.app.dispatcher(),
                self.guard,
                require_auth=self.app.config.require_auth,
                service="test",
            )
            # Same serialization the worker applies before writing.
            return json.loads(encode_message(response))
        except Exception as exc:
            if self.raise_errors:
                raise
            return error_response(exc)

    def get(self, path: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        return self.request("GET", path, data, **kwargs)

    def post(self, path: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        return self.request("POST", path, data, **kwargs)

    def put(self, path: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        return self.request("PUT", path, data, **kwargs)

    def patch(self, path: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        return self.request("PATCH", path, data, **kwargs)

    def delete(self, path: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        return self.request("DELETE", path, data, **kwargs)
