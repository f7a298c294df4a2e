"""Roost application class.

Mutable during setup (routes, handlers, validators, services).
Frozen the first time the route table is needed: ``app.run()``,
``app.dispatcher()``, or a ``TestClient`` request.
"""

import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from roost.config import RuntimeConfig
from roost.context import ServiceContext
from roost.errors import ConfigurationError
from roost.handlers import Container, HandlerFactory, HandlerRegistry
from roost.routing.dispatcher import Dispatcher
from roost.routing.router import Router
from roost.routing.table import RouteDeclarations, compile_routes
from roost.security.token import TokenGuard
from roost.server.worker import SocketService
from roost.validation import BUILTIN_RULES, Validator


@dataclass(slots=True)
class _PendingService:
    """A service waiting to be forked by the supervisor."""

    name: str
    service_class: type | str


class App:
    """The roost application.

    Collects everything a supervisor needs and hands it over in one
    ``ServiceContext``::

        app = App(RuntimeConfig(socket_dir="/run/myapp"))

        @app.handler("home")
        class HomeHandler(Handler):
            def index(self) -> dict:
                return {"message": "Hello World!"}

        app.routes("/", [
            {"controller": "home", "action": "index", "method": "GET",
             "uri": "/", "is_public": True},
        ])
        app.service("web")
        app.run()
    """

    __slots__ = (
        "_container",
        "_context",
        "_declarations",
        "_dispatcher",
        "_freeze_lock",
        "_frozen",
        "_guard",
        "_handlers",
        "_router",
        "_rules",
        "_services",
        "config",
    )

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        *,
        container: Container | None = None,
        guard: TokenGuard | None = None,
    ) -> None:
        self.config: RuntimeConfig = config or RuntimeConfig()
        self._declarations: dict[str, list[dict[str, Any]]] = {}
        self._handlers = HandlerRegistry()
        self._rules: dict[str, Validator] = dict(BUILTIN_RULES)
        self._services: list[_PendingService] = []
        self._container = container
        self._guard = guard
        self._frozen: bool = False
        self._freeze_lock = threading.Lock()

        # Compiled state: set during _freeze()
        self._router: Router | None = None
        self._dispatcher: Dispatcher | None = None
        self._context: ServiceContext | None = None

    # -- Setup --

    def routes(self, prefix: str, entries: Sequence[Mapping[str, Any]]) -> None:
        """Declare routes under *prefix*. Repeated prefixes accumulate."""
        self._check_not_frozen()
        if isinstance(entries, (Mapping, str)):
            msg = f"Routes under {prefix!r} must be a list of entries."
            raise ConfigurationError(msg)
        self._declarations.setdefault(prefix, []).extend(dict(e) for e in entries)

    def load_routes(self, declarations: RouteDeclarations) -> None:
        """Declare a whole ``{prefix: [entry, ...]}`` table at once."""
        for prefix, entries in declarations.items():
            self.routes(prefix, entries)

    def handler(self, key: str) -> Callable[[HandlerFactory], HandlerFactory]:
        """Register a handler class (or factory) under *key*.

        Usage::

            @app.handler("users")
            class UserHandler(Handler):
                def show(self, id: int) -> dict: ...
        """

        def decorator(factory: HandlerFactory) -> HandlerFactory:
            self.add_handler(key, factory)
            return factory

        return decorator

    def add_handler(self, key: str, factory: HandlerFactory) -> None:
        self._check_not_frozen()
        self._handlers.register(key, factory)

    def validator(self, name: str) -> Callable[[Validator], Validator]:
        """Register a custom validation rule usable by name in route declarations.

        Usage::

            @app.validator("slug")
            def slug(value, params) -> bool:
                return bool(re.fullmatch(r"[a-z0-9-]+", str(value)))
        """

        def decorator(func: Validator) -> Validator:
            self._check_not_frozen()
            if name in self._rules and self._rules[name] is not func:
                msg = f"Validation rule {name!r} is already registered."
                raise ConfigurationError(msg)
            self._rules[name] = func
            return func

        return decorator

    def service(self, name: str, service_class: type | str = SocketService) -> None:
        """Declare a worker the supervisor should fork on ``run()``."""
        self._check_not_frozen()
        if any(pending.name == name for pending in self._services):
            msg = f"Service {name!r} is already declared."
            raise ConfigurationError(msg)
        self._services.append(_PendingService(name, service_class))

    # -- Introspection --

    @property
    def route_declarations(self) -> dict[str, list[dict[str, Any]]]:
        return {prefix: list(entries) for prefix, entries in self._declarations.items()}

    @property
    def handlers(self) -> HandlerRegistry:
        return self._handlers

    @property
    def rules(self) -> dict[str, Validator]:
        return dict(self._rules)

    @property
    def service_names(self) -> list[str]:
        return [pending.name for pending in self._services]

    @property
    def guard(self) -> TokenGuard:
        """The shared token guard, loaded from ``config.token_path`` on first use."""
        if self._guard is None:
            self._guard = TokenGuard.load(self.config.token_path)
        return self._guard

    @property
    def router(self) -> Router:
        self._ensure_frozen()
        assert self._router is not None
        return self._router

    def dispatcher(self) -> Dispatcher:
        self._ensure_frozen()
        assert self._dispatcher is not None
        return self._dispatcher

    def context(self) -> ServiceContext:
        """The context every forked worker receives."""
        if self._context is None:
            self._ensure_frozen()
            self._context = ServiceContext(
                config=self.config,
                guard=self.guard,
                handlers=self._handlers,
                rules=dict(self._rules),
                container=self._container,
            )
        return self._context

    # -- Running --

    def run(self) -> None:
        """Fork every declared service and supervise until stopped."""
        from roost.supervisor import Supervisor

        if not self._services:
            msg = "No services declared. Call app.service(name) before app.run()."
            raise ConfigurationError(msg)

        supervisor = Supervisor(self.context(), self.route_declarations)
        for pending in self._services:
            supervisor.register_service(pending.service_class, pending.name)
        supervisor.run()

    # -- Internal --

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the route table. MUST only be called while holding _freeze_lock."""
        router = compile_routes(
            self._declarations,
            self._handlers,
            self._rules,
            container=self._container,
        )
        self._router = router
        self._dispatcher = Dispatcher(router, self._handlers, container=self._container)
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after its route table has been compiled. "
                "Declare routes, handlers, and services before calling app.run()."
            )
            raise RuntimeError(msg)
