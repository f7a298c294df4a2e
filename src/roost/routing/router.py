"""Method+path matching over a segment trie.

``add()`` grows the trie while the route table compiles and
``compile()`` freezes it. A request segment tries a literal child
first, then the node's ``{name:type}`` child, then a trailing
``{name:path}``; when a branch dead-ends or lacks the
requested method the next choice is tried.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TypeAlias

from roost.errors import ConfigurationError, MethodNotAllowed, NotFound
from roost.routing.params import CONVERTERS
from roost.routing.route import PathSegment, RouteEntry, RouteMatch

_PARAM_RE = re.compile(r"\{(?P<name>[A-Za-z_]\w*)(?::(?P<type>\w+))?\}")
_ANGLE_PARAM_RE = re.compile(r"<[^>/]+>")

MethodTable: TypeAlias = dict[str, RouteEntry]


def parse_path(path: str) -> list[PathSegment]:
    """Split a route path into literal and variable segments.

    ``"/users/{id:int}"`` gives ``users`` and an ``int`` variable named
    ``id``; ``{name}`` without a type is a ``str`` variable. The root
    path has no segments.
    """
    if _ANGLE_PARAM_RE.search(path):
        msg = (
            f"Route path {path!r} uses <param> syntax. "
            "Roost expects {param} (e.g. /users/{id})."
        )
        raise ConfigurationError(msg)

    segments: list[PathSegment] = []
    for part in filter(None, path.split("/")):
        if not part.startswith("{"):
            segments.append(PathSegment(part))
            continue

        found = _PARAM_RE.fullmatch(part)
        if found is None:
            msg = f"Malformed variable {part!r} in route path {path!r}."
            raise ConfigurationError(msg)
        kind = found["type"] or "str"
        if kind not in CONVERTERS:
            msg = f"Unknown converter {kind!r} in route path {path!r}."
            raise ConfigurationError(msg)
        segments.append(PathSegment(part, is_param=True, param_name=found["name"], param_type=kind))
    return segments


@dataclass(slots=True, eq=False)
class _Node:
    literals: dict[str, "_Node"] = field(default_factory=dict)
    variable: "_Variable | None" = None
    tail: "_Tail | None" = None
    methods: MethodTable = field(default_factory=dict)


@dataclass(slots=True, eq=False)
class _Variable:
    name: str
    kind: str
    pattern: re.Pattern[str]
    node: _Node = field(default_factory=_Node)


@dataclass(slots=True, eq=False)
class _Tail:
    """A ``{name:path}`` segment: matches one or more remaining segments."""

    name: str
    methods: MethodTable = field(default_factory=dict)


class Router:
    """Resolves (method, path) to a ``RouteMatch``.

    Usage::

        router = Router()
        router.add(RouteEntry("GET", "/users", "users", "index"))
        router.add(RouteEntry("GET", "/users/{id:int}", "users", "show"))
        router.compile()
        router.match("GET", "/users/42")  # path_params == {"id": "42"}

    Captured values stay strings; conversion happens at dispatch.
    """

    __slots__ = ("_compiled", "_entries", "_root")

    def __init__(self) -> None:
        self._root = _Node()
        self._entries: list[RouteEntry] = []
        self._compiled = False

    def add(self, route: RouteEntry) -> None:
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        segments = parse_path(route.path)
        node = self._root
        table = node.methods
        for position, seg in enumerate(segments):
            if not seg.is_param:
                node = node.literals.setdefault(seg.value, _Node())
                table = node.methods
            elif seg.param_type == "path":
                if position != len(segments) - 1:
                    msg = f"Route {route.path!r}: {seg.value!r} must be the last segment."
                    raise ConfigurationError(msg)
                table = self._tail(node, seg, route.path).methods
            else:
                node = self._variable(node, seg, route.path).node
                table = node.methods

        if route.method in table:
            msg = f"Duplicate route: {route.method} {route.path!r} is already registered."
            raise ConfigurationError(msg)
        table[route.method] = route
        self._entries.append(route)

    @staticmethod
    def _variable(node: _Node, seg: PathSegment, path: str) -> _Variable:
        name = seg.param_name or ""
        edge = node.variable
        if edge is None:
            pattern = re.compile(CONVERTERS[seg.param_type].pattern)
            edge = node.variable = _Variable(name, seg.param_type, pattern)
        elif (edge.name, edge.kind) != (name, seg.param_type):
            msg = (
                f"Route {path!r} declares {seg.value!r} where another "
                f"route already uses {{{edge.name}:{edge.kind}}}."
            )
            raise ConfigurationError(msg)
        return edge

    @staticmethod
    def _tail(node: _Node, seg: PathSegment, path: str) -> _Tail:
        name = seg.param_name or "path"
        if node.tail is None:
            node.tail = _Tail(name)
        elif node.tail.name != name:
            msg = (
                f"Route {path!r} declares {seg.value!r} where another "
                f"route already uses {{{node.tail.name}:path}}."
            )
            raise ConfigurationError(msg)
        return node.tail

    @property
    def routes(self) -> list[RouteEntry]:
        """Every registered route, in registration order."""
        return list(self._entries)

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Resolve *method* and *path*.

        Candidates are tried in priority order and the first one with a
        route for *method* wins. ``MethodNotAllowed`` lists the methods
        of every candidate when none has *method*; ``NotFound`` when the
        path reaches no route at all.
        """
        parts = [part for part in path.split("/") if part]
        allowed: dict[str, None] = {}
        for methods, params in self._walk(self._root, parts, {}):
            route = methods.get(method)
            if route is not None:
                return RouteMatch(route=route, path_params=params)
            allowed.update(dict.fromkeys(methods))
        if allowed:
            raise MethodNotAllowed(tuple(self._in_registration_order(allowed)))
        raise NotFound(f"No route matches {method} {path!r}")

    def _in_registration_order(self, methods: dict[str, None]) -> list[str]:
        ordered = dict.fromkeys(e.method for e in self._entries if e.method in methods)
        return list(ordered)

    def _walk(
        self,
        node: _Node,
        parts: list[str],
        params: dict[str, str],
    ) -> Iterator[tuple[MethodTable, dict[str, str]]]:
        if not parts:
            if node.methods:
                yield node.methods, params
            return

        head, rest = parts[0], parts[1:]
        child = node.literals.get(head)
        if child is not None:
            yield from self._walk(child, rest, params)

        edge = node.variable
        if edge is not None and edge.pattern.fullmatch(head):
            yield from self._walk(edge.node, rest, {**params, edge.name: head})

        if node.tail is not None and node.tail.methods:
            yield node.tail.methods, {**params, node.tail.name: "/".join(parts)}
