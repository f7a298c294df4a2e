"""Built-in validation rules for route fields.

Each rule is a callable with the signature::

    def rule(value: Any, params: Mapping[str, Any]) -> bool:
        '''Return True when the value passes.'''

Rules receive the raw field value (``None`` when the field is absent)
and the parameter bag declared on the route. The message shown on
failure lives on the route declaration, not on the rule, so the same
rule can carry different wording per route::

    "validations": {
        "name": [
            {"rule": "required", "message": "Name is required"},
            {"rule": "max_length", "params": {"max": 40},
             "message": "Name must be at most {{max}} characters"},
        ],
    }

Custom rules follow the same protocol and are registered by name.
"""

import re
from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

# Type alias for a validation rule
Validator: TypeAlias = Callable[[Any, Mapping[str, Any]], bool]


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


# ---------------------------------------------------------------------------
# Presence
# ---------------------------------------------------------------------------


def required(value: Any, params: Mapping[str, Any]) -> bool:
    """Field must be present and non-empty."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return bool(value)
    return True


# ---------------------------------------------------------------------------
# Length
# ---------------------------------------------------------------------------


def max_length(value: Any, params: Mapping[str, Any]) -> bool:
    """String must be at most ``params["max"]`` characters."""
    return len(_text(value)) <= int(params["max"])


def min_length(value: Any, params: Mapping[str, Any]) -> bool:
    """String must be at least ``params["min"]`` characters."""
    return len(_text(value)) >= int(params["min"])


# ---------------------------------------------------------------------------
# Format
# ---------------------------------------------------------------------------

# Basic email pattern: checks structure, not deliverability
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")


def email(value: Any, params: Mapping[str, Any]) -> bool:
    """Value must be a valid email address (basic format check)."""
    return _EMAIL_RE.match(_text(value)) is not None


# Basic URL pattern: checks scheme + host structure
_URL_RE = re.compile(r"^https?://[^\s/$.?#].\S*$", re.IGNORECASE)


def url(value: Any, params: Mapping[str, Any]) -> bool:
    """Value must be a valid URL (http/https)."""
    return _URL_RE.match(_text(value)) is not None


def matches(value: Any, params: Mapping[str, Any]) -> bool:
    """Value must match the regex in ``params["pattern"]``."""
    return re.match(params["pattern"], _text(value)) is not None


# ---------------------------------------------------------------------------
# Choice
# ---------------------------------------------------------------------------


def one_of(value: Any, params: Mapping[str, Any]) -> bool:
    """Value must be one of ``params["choices"]``."""
    try:
        return value in params["choices"]
    except TypeError:
        # Unhashable value against a set or dict of choices.
        return False


# ---------------------------------------------------------------------------
# Type coercion
# ---------------------------------------------------------------------------


def integer(value: Any, params: Mapping[str, Any]) -> bool:
    """Value must be a whole number (or a string holding one)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    try:
        int(_text(value))
    except (TypeError, ValueError):
        return False
    return True


def number(value: Any, params: Mapping[str, Any]) -> bool:
    """Value must be a number (int or float, or a string holding one)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    try:
        float(_text(value))
    except (TypeError, ValueError):
        return False
    return True


BUILTIN_RULES: dict[str, Validator] = {
    "required": required,
    "max_length": max_length,
    "min_length": min_length,
    "email": email,
    "url": url,
    "matches": matches,
    "one_of": one_of,
    "integer": integer,
    "number": number,
}
