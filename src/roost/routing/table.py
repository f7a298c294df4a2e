"""Route table compilation: declarations in, frozen Router out.

Routes are declared as plain data: a mapping from a path prefix to a
list of entries, each carrying its own suffix ``uri``::

    ROUTES = {
        "/": [
            {"controller": "home", "action": "index", "method": "get",
             "uri": "/", "is_public": True},
        ],
        "/user": [
            {"controller": "users", "action": "show", "method": "GET",
             "uri": "/{id:int}", "accept": ["fields"],
             "validations": {"fields": [{"rule": "required"}]}},
        ],
    }

Keys the compiler does not know (``title``, ``description``, ...) are
kept on ``RouteEntry.meta``.
"""

from collections.abc import Mapping, Sequence
from typing import Any, TypeAlias

from roost.errors import ConfigurationError
from roost.handlers import Container, HandlerRegistry
from roost.routing.route import RouteEntry
from roost.routing.router import Router
from roost.validation import FieldRule, Validator, build_field_rules

RouteDeclarations: TypeAlias = Mapping[str, Sequence[Mapping[str, Any]]]

_REQUIRED_KEYS = ("controller", "action", "method", "uri")
_KNOWN_KEYS = frozenset(
    {*_REQUIRED_KEYS, "template", "is_public", "accept", "validations"}
)


def join_path(prefix: str, uri: str) -> str:
    """Concatenate a group prefix and an entry uri into one routable path."""
    if prefix == "/":
        path = uri
    else:
        path = prefix + uri
    return path or "/"


def build_entry(
    prefix: str,
    declaration: Mapping[str, Any],
    rules: Mapping[str, Validator] | None = None,
) -> RouteEntry:
    """Compile one declared entry under *prefix* into a ``RouteEntry``."""
    missing = [key for key in _REQUIRED_KEYS if key not in declaration]
    if missing:
        msg = f"Route under {prefix!r} is missing {', '.join(missing)}: {dict(declaration)!r}"
        raise ConfigurationError(msg)

    path = join_path(prefix, str(declaration["uri"]))
    accept = tuple(declaration.get("accept") or ())

    declared_rules = declaration.get("validations") or {}
    if not isinstance(declared_rules, Mapping):
        msg = f"Route {path!r}: validations must map field names to rules."
        raise ConfigurationError(msg)

    stray = [name for name in declared_rules if name not in accept]
    if stray:
        msg = (
            f"Route {path!r} validates {', '.join(stray)} but does not accept "
            f"{'it' if len(stray) == 1 else 'them'}. Add the field(s) to 'accept'."
        )
        raise ConfigurationError(msg)

    validations: dict[str, tuple[FieldRule, ...]] = {
        name: build_field_rules(name, declared, rules)
        for name, declared in declared_rules.items()
    }

    return RouteEntry(
        method=str(declaration["method"]).upper(),
        path=path,
        handler=str(declaration["controller"]),
        action=str(declaration["action"]),
        template=declaration.get("template"),
        is_public=bool(declaration.get("is_public", False)),
        accept=accept,
        validations=validations,
        meta={k: v for k, v in declaration.items() if k not in _KNOWN_KEYS},
    )


def compile_routes(
    declarations: RouteDeclarations,
    handlers: HandlerRegistry | None = None,
    rules: Mapping[str, Validator] | None = None,
    *,
    container: Container | None = None,
) -> Router:
    """Compile route declarations into a frozen ``Router``.

    When *handlers* is given, every ``controller`` key must be registered
    in it (or be provided by *container*), and every ``action`` must exist
    on the registered factory when that factory is a class. Unknown
    handlers, rules, malformed entries, and duplicate method+path pairs
    raise ``ConfigurationError``.
    """
    router = Router()
    for prefix, entries in declarations.items():
        if isinstance(entries, (Mapping, str)):
            msg = f"Routes under {prefix!r} must be a list of entries."
            raise ConfigurationError(msg)
        for declaration in entries:
            entry = build_entry(prefix, declaration, rules)
            provided = container is not None and container.has(entry.handler)
            if handlers is not None and not provided:
                _check_handler(entry, handlers)
            router.add(entry)
    router.compile()
    return router


def _check_handler(entry: RouteEntry, handlers: HandlerRegistry) -> None:
    factory = handlers.resolve(entry.handler)
    if isinstance(factory, type) and not callable(getattr(factory, entry.action, None)):
        msg = (
            f"Route {entry.method} {entry.path!r}: handler {entry.handler!r} "
            f"({factory.__name__}) has no action {entry.action!r}."
        )
        raise ConfigurationError(msg)
