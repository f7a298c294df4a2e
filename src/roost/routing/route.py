"""RouteEntry and RouteMatch frozen dataclasses."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from roost.validation import FieldRule


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:  ``/users``  (is_param=False)
    Param:   ``/{id}``   (is_param=True, param_name="id")
    Typed:   ``/{id:int}`` (is_param=True, param_name="id", param_type="int")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


@dataclass(frozen=True, slots=True)
class RouteEntry:
    """A compiled route: one method + path bound to a handler action.

    Created by ``compile_routes()`` from a route declaration and shared
    read-only by every dispatch afterwards.
    """

    method: str
    path: str
    handler: str
    action: str
    template: str | None = None
    is_public: bool = False
    accept: tuple[str, ...] = ()
    validations: Mapping[str, tuple[FieldRule, ...]] = field(default_factory=dict)
    meta: Mapping[str, Any] = field(default_factory=dict)

    @property
    def param_types(self) -> dict[str, str]:
        """Declared converter per path variable, e.g. ``{"id": "int"}``."""
        from roost.routing.router import parse_path

        return {
            seg.param_name: seg.param_type
            for seg in parse_path(self.path)
            if seg.is_param and seg.param_name
        }


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match.

    ``path_params`` keeps insertion order (left to right in the path);
    the dispatcher passes the values positionally in that order.
    """

    route: RouteEntry
    path_params: dict[str, str]
