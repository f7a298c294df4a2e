"""Roost exception hierarchy.

Shared across the supervisor, the socket transport, and the router so
every module raises and catches the same types.
"""

from dataclasses import dataclass
from typing import Any


class RoostError(Exception):
    """Base for all roost-specific errors."""


class ConfigurationError(RoostError):
    """Raised when runtime configuration or a route table is invalid.

    Typically raised while compiling routes or loading config at startup.
    """


# ---------------------------------------------------------------------------
# Supervisor
# ---------------------------------------------------------------------------


class ServiceError(RoostError):
    """A service could not be registered or started."""


class UnknownServiceError(ServiceError):
    """The service class reference does not resolve to a class."""


class ForkError(ServiceError):
    """``os.fork()`` failed while starting a service."""


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TransportError(RoostError):
    """Socket-level failure while reading or writing a message."""


class ReceiveTimeoutError(TransportError, TimeoutError):
    """No complete message arrived within the service timeout."""


class EmptyMessageError(TransportError):
    """The peer closed the connection before sending anything."""


class MalformedMessageError(TransportError):
    """The payload is not a JSON object."""


class AuthenticationError(RoostError):
    """The message carries no valid auth token."""


class AccessDenied(RoostError):  # noqa: N818
    """A private route was requested without an authenticated identity.

    Raised by the dispatcher as a hard stop. It is never turned into an
    ordinary dispatch outcome; the transport answers with a 403 instead.
    """


class ValidationError(RoostError):
    """One or more request fields failed validation.

    ``errors`` maps each failing field to its (rendered) message.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        fields = ", ".join(self.errors)
        super().__init__(f"Validation failed for: {fields}")

    def as_response(self) -> dict[str, Any]:
        return {"code": 422, "message": "Validation failed", "errors": dict(self.errors)}


# ---------------------------------------------------------------------------
# Routing outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RoutingError(RoostError):
    """A routing outcome with a status code.

    Raised by ``Router.match()`` and converted into a plain response
    dict by the dispatcher, so callers see it as a normal result.
    """

    code: int
    message: str
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.code}: {self.message} ({self.detail})"
        return f"{self.code}: {self.message}"

    def as_response(self) -> dict[str, Any]:
        response: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.detail:
            response["detail"] = self.detail
        return response


class NotFound(RoutingError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(code=404, message="Not found!", detail=detail)

    def as_response(self) -> dict[str, Any]:
        # The detail names the unmatched path; keep it off the wire.
        return {"code": self.code, "message": self.message}


class MethodNotAllowed(RoutingError):  # noqa: N818
    """405: the path exists but not for this method.

    ``detail`` lists the allowed methods in registration order.
    """

    def __init__(self, allowed: tuple[str, ...] | list[str]) -> None:
        allow_value = ", ".join(allowed)
        super().__init__(
            code=405,
            message="Method not allowed",
            detail=f"Allowed methods: {allow_value}",
        )
