"""Everything a worker needs besides its name and routes.

The supervisor builds one ``ServiceContext`` at startup and hands it to
every service it forks. Nothing in roost reads configuration or the
auth token from module-level state.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

from roost.config import RuntimeConfig
from roost.handlers import Container, HandlerRegistry
from roost.security.token import TokenGuard
from roost.validation import BUILTIN_RULES, Validator


@dataclass(frozen=True, slots=True)
class ServiceContext:
    """Shared, read-only dependencies for a supervisor and its workers."""

    config: RuntimeConfig
    guard: TokenGuard
    handlers: HandlerRegistry = field(default_factory=HandlerRegistry)
    rules: Mapping[str, Validator] = field(default_factory=lambda: dict(BUILTIN_RULES))
    container: Container | None = None
