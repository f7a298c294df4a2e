"""Dispatcher: turns (method, path, data) into a handler call.

Outcomes:

- no route for the path   → ``{"code": 404, "message": "Not found!"}``
- path known, wrong method → ``{"code": 405, "message": "Method not allowed",
  "detail": "Allowed methods: GET"}``
- failed validation       → ``{"code": 422, "message": "Validation failed",
  "errors": {...}}``
- match                    → whatever the handler action returns, verbatim

A private route reached without an identity raises ``AccessDenied``
instead of returning an outcome; the transport answers it with a 403.
"""

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import unquote

from roost.errors import AccessDenied, RoutingError, ValidationError
from roost.handlers import Container, HandlerRegistry, Templated
from roost.routing.params import convert_params
from roost.routing.route import RouteMatch
from roost.routing.router import Router
from roost.security.audit import ACCESS_DENIED, emit_security_event
from roost.validation import validate_request

logger = logging.getLogger("roost.routing")


def normalize_path(path: str) -> str:
    """Drop any ``?query`` suffix and percent-decode the rest."""
    path, _, _ = path.partition("?")
    return unquote(path) or "/"


class Dispatcher:
    """Resolves a message against a compiled router and runs the handler.

    Usage::

        router = compile_routes(ROUTES, handlers)
        dispatcher = Dispatcher(router, handlers)
        dispatcher.dispatch("GET", "/", {})
    """

    __slots__ = ("_container", "_handlers", "_router")

    def __init__(
        self,
        router: Router,
        handlers: HandlerRegistry,
        *,
        container: Container | None = None,
    ) -> None:
        self._router = router
        self._handlers = handlers
        self._container = container

    @property
    def router(self) -> Router:
        return self._router

    def dispatch(
        self,
        method: str,
        path: str,
        data: Mapping[str, Any] | None = None,
        *,
        identity: str | None = None,
    ) -> Any:
        """Route one request and return the response body."""
        path = normalize_path(path)
        try:
            match = self._router.match(method.upper(), path)
        except RoutingError as exc:
            logger.debug("%s %s -> %s", method, path, exc)
            return exc.as_response()

        try:
            return self.handle_found(match, data or {}, identity=identity)
        except ValidationError as exc:
            logger.debug("%s %s -> validation failed: %s", method, path, ", ".join(exc.errors))
            return exc.as_response()

    def handle_found(
        self,
        match: RouteMatch,
        data: Mapping[str, Any],
        *,
        identity: str | None = None,
    ) -> Any:
        """Gate, validate, build the handler, and run the route's action."""
        route = match.route

        if not route.is_public and identity is None:
            emit_security_event(
                ACCESS_DENIED,
                path=route.path,
                method=route.method,
                details={"handler": route.handler},
            )
            msg = f"{route.method} {route.path} requires an authenticated caller"
            raise AccessDenied(msg)

        if data and route.validations:
            validate_request(route.accept, route.validations, data)

        handler = self._build_handler(route.handler, data)

        if route.template is not None and isinstance(handler, Templated):
            handler.set_template(route.template)

        args = convert_params(match.path_params, route.param_types)
        action = getattr(handler, route.action)
        return action(*args.values())

    def _build_handler(self, key: str, data: Mapping[str, Any]) -> Any:
        if self._container is not None and self._container.has(key):
            handler = self._container.get(key)
        else:
            handler = self._handlers.resolve(key)()

        set_data = getattr(handler, "set_data", None)
        if callable(set_data):
            set_data(dict(data))
        return handler
