"""Handler base class, template capability, and the handler registry.

Routes name their handler by a stable symbolic key (``"home"``,
``"users"``). The registry maps each key to a zero-argument factory,
usually the handler class itself, and is consulted once, when the
route table is compiled, so a typo fails at startup instead of on the
first request.

Usage::

    handlers = HandlerRegistry()

    @handlers.register("home")
    class HomeHandler(Handler):
        def index(self) -> dict:
            return {"message": "Hello World!"}
"""

from collections.abc import Callable, Iterator, Mapping
from typing import Any, Protocol, TypeAlias, runtime_checkable

from roost.errors import ConfigurationError

HandlerFactory: TypeAlias = Callable[[], Any]


class Handler:
    """Base class for route handlers.

    A fresh instance serves each request. The raw request payload is
    injected through ``set_data()`` before the action runs.
    """

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}

    def set_data(self, data: Mapping[str, Any] | None = None) -> None:
        self.data = dict(data or {})


@runtime_checkable
class Templated(Protocol):
    """Optional capability: the handler accepts a template name."""

    def set_template(self, template: str) -> None: ...


class TemplateMixin:
    """Adds the template-selection capability to a handler.

    The route's ``template`` is handed over before the action runs; what
    the handler does with the name is up to the handler.
    """

    template: str | None = None

    def set_template(self, template: str) -> None:
        self.template = template


@runtime_checkable
class Container(Protocol):
    """Minimal dependency-injection lookup used by the dispatcher."""

    def has(self, key: str) -> bool: ...

    def get(self, key: str) -> Any: ...


class HandlerRegistry:
    """Maps symbolic handler keys to factories."""

    __slots__ = ("_factories",)

    def __init__(self, factories: Mapping[str, HandlerFactory] | None = None) -> None:
        self._factories: dict[str, HandlerFactory] = dict(factories or {})

    def register(
        self,
        key: str,
        factory: HandlerFactory | None = None,
    ) -> Any:
        """Register *factory* under *key*. Usable as a decorator.

        ::

            handlers.register("home", HomeHandler)

            @handlers.register("users")
            class UserHandler(Handler): ...
        """
        if factory is not None:
            self._add(key, factory)
            return factory

        def decorator(obj: HandlerFactory) -> HandlerFactory:
            self._add(key, obj)
            return obj

        return decorator

    def _add(self, key: str, factory: HandlerFactory) -> None:
        if not callable(factory):
            msg = f"Handler factory for {key!r} must be callable, got {type(factory).__name__}."
            raise ConfigurationError(msg)
        if key in self._factories and self._factories[key] is not factory:
            msg = f"Handler key {key!r} is already registered."
            raise ConfigurationError(msg)
        self._factories[key] = factory

    def resolve(self, key: str) -> HandlerFactory:
        """Return the factory for *key*.

        Raises ``ConfigurationError`` when the key is unknown.
        """
        try:
            return self._factories[key]
        except KeyError:
            known = ", ".join(sorted(self._factories)) or "(none)"
            msg = f"Unknown handler {key!r}. Registered handlers: {known}"
            raise ConfigurationError(msg) from None

    def __contains__(self, key: object) -> bool:
        return key in self._factories

    def __iter__(self) -> Iterator[str]:
        return iter(self._factories)

    def __len__(self) -> int:
        return len(self._factories)
