"""Message pipeline: decoded request in, response body out.

``handle_message()`` is transport-agnostic: the socket worker and the
in-process ``TestClient`` both call it, so a request behaves the same
whether or not it crossed a socket.
"""

import logging
from collections.abc import Mapping
from typing import Any

from roost.errors import AccessDenied, AuthenticationError, MalformedMessageError
from roost.routing.dispatcher import Dispatcher
from roost.security.audit import AUTH_FAILED, emit_security_event
from roost.security.token import TokenGuard

logger = logging.getLogger("roost.server")

# Identity given to callers that present the shared token.
TOKEN_IDENTITY = "token"

UNAUTHORIZED: dict[str, Any] = {"status": "error", "code": 401, "message": "Unauthorized"}
FORBIDDEN: dict[str, Any] = {"status": "error", "code": 403, "message": "Forbidden"}
INTERNAL_ERROR: dict[str, Any] = {
    "status": "error",
    "code": 500,
    "message": "Internal Server Error",
}


def error_response(exc: BaseException) -> dict[str, Any]:
    """Map a pipeline failure to the body sent back on the wire.

    Only the status code and a fixed message go out; exception text and
    tracebacks stay in the log.
    """
    if isinstance(exc, AuthenticationError):
        return dict(UNAUTHORIZED)
    if isinstance(exc, AccessDenied):
        return dict(FORBIDDEN)
    return dict(INTERNAL_ERROR)


def resolve_identity(
    message: Mapping[str, Any],
    guard: TokenGuard | None,
    *,
    require_auth: bool = False,
    service: str | None = None,
) -> str | None:
    """Return the caller identity for *message*, or ``None`` if anonymous.

    With *require_auth* set, a missing or wrong token raises
    ``AuthenticationError``.
    """
    token = message.get("auth_token")
    if guard is not None and guard.validate_token(token):
        return TOKEN_IDENTITY

    if token is not None or require_auth:
        emit_security_event(
            AUTH_FAILED,
            service=service,
            path=str(message.get("path", "/")),
            method=str(message.get("method", "GET")),
            details={"reason": "missing token" if token is None else "invalid token"},
        )
    if require_auth:
        msg = "Authentication error"
        raise AuthenticationError(msg)
    return None


def handle_message(
    message: Mapping[str, Any],
    dispatcher: Dispatcher,
    guard: TokenGuard | None = None,
    *,
    require_auth: bool = False,
    service: str | None = None,
) -> Any:
    """Authenticate, route, and dispatch one message.

    ``method`` defaults to ``GET``, ``path`` to ``/`` and ``data`` to an
    empty object. The dispatcher's result is returned unchanged;
    ``AuthenticationError``, ``AccessDenied`` and handler exceptions
    propagate to the caller.
    """
    identity = resolve_identity(message, guard, require_auth=require_auth, service=service)

    method = message.get("method") or "GET"
    path = message.get("path") or "/"
    data = message.get("data")
    if data is None:
        data = {}
    if not isinstance(method, str) or not isinstance(path, str):
        msg = "'method' and 'path' must be strings"
        raise MalformedMessageError(msg)
    if not isinstance(data, Mapping):
        msg = f"'data' must be a JSON object, got {type(data).__name__}"
        raise MalformedMessageError(msg)

    return dispatcher.dispatch(method, path, data, identity=identity)
