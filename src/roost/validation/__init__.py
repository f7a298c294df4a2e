"""Request validation: ordered per-field rules, aggregated errors.

Usage::

    from roost.validation import FieldRule, validate, required, min_length

    rules = {
        "name": (FieldRule("required", required, message="Name is required"),),
        "code": (
            FieldRule("required", required),
            FieldRule("min_length", min_length, {"min": 4},
                      "Code must be at least {{min}} characters"),
        ),
    }
    result = validate(("name", "code"), rules, data)
    if not result:
        # result.errors == {"code": "Code must be at least 4 characters"}
        ...
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from roost.errors import ConfigurationError
from roost.validation.result import ValidationResult
from roost.validation.rules import (
    BUILTIN_RULES,
    Validator,
    email,
    integer,
    matches,
    max_length,
    min_length,
    number,
    one_of,
    required,
    url,
)

__all__ = [
    "BUILTIN_RULES",
    "DEFAULT_MESSAGE",
    "FieldRule",
    "ValidationResult",
    "Validator",
    "build_field_rules",
    "email",
    "integer",
    "matches",
    "max_length",
    "min_length",
    "number",
    "one_of",
    "render_message",
    "required",
    "url",
    "validate",
    "validate_request",
]

DEFAULT_MESSAGE = "Validation error"


@dataclass(frozen=True, slots=True)
class FieldRule:
    """One compiled rule for one field: the check, its params, its message."""

    name: str
    validator: Validator
    params: Mapping[str, Any] = field(default_factory=dict)
    message: str = DEFAULT_MESSAGE

    def check(self, value: Any) -> bool:
        return bool(self.validator(value, self.params))

    def render(self) -> str:
        return render_message(self.message, self.params)


def render_message(message: str, params: Mapping[str, Any]) -> str:
    """Substitute ``{{key}}`` placeholders from *params*."""
    for key, value in params.items():
        message = message.replace("{{" + str(key) + "}}", str(value))
    return message


def _compile_rule(
    field_name: str,
    rule: Any,
    config: Mapping[str, Any],
    rules: Mapping[str, Validator],
) -> FieldRule:
    if callable(rule):
        name = getattr(rule, "__name__", repr(rule))
        validator = rule
    elif isinstance(rule, str) and rule in rules:
        name = rule
        validator = rules[rule]
    else:
        msg = f"Unknown validation rule {rule!r} for field {field_name!r}."
        raise ConfigurationError(msg)

    params = config.get("params") or {}
    if not isinstance(params, Mapping):
        msg = f"Params for rule {name!r} on field {field_name!r} must be a mapping."
        raise ConfigurationError(msg)

    return FieldRule(
        name=name,
        validator=validator,
        params=dict(params),
        message=config.get("message") or DEFAULT_MESSAGE,
    )


def build_field_rules(
    field_name: str,
    declared: Any,
    rules: Mapping[str, Validator] | None = None,
) -> tuple[FieldRule, ...]:
    """Compile one field's rule declaration into ordered ``FieldRule`` objects.

    Accepts either a list of ``{"rule": ..., "params": ..., "message": ...}``
    objects, or a mapping of ``rule -> {"params": ..., "message": ...}``
    (insertion order is the run order).
    """
    registry = BUILTIN_RULES if rules is None else rules
    compiled: list[FieldRule] = []

    if isinstance(declared, Mapping):
        for rule, config in declared.items():
            compiled.append(_compile_rule(field_name, rule, config or {}, registry))
        return tuple(compiled)

    if isinstance(declared, (list, tuple)):
        for item in declared:
            if isinstance(item, Mapping):
                if "rule" not in item:
                    msg = f"Validation entry for field {field_name!r} is missing 'rule'."
                    raise ConfigurationError(msg)
                compiled.append(_compile_rule(field_name, item["rule"], item, registry))
            else:
                compiled.append(_compile_rule(field_name, item, {}, registry))
        return tuple(compiled)

    msg = f"Validations for field {field_name!r} must be a list or a mapping."
    raise ConfigurationError(msg)


def validate(
    accept: Iterable[str],
    rules: Mapping[str, tuple[FieldRule, ...]],
    data: Mapping[str, Any],
) -> ValidationResult:
    """Validate *data* for every accepted field that declares rules.

    Rules run in declared order. The first failing rule records its
    rendered message and the remaining rules for that field are skipped.
    Fields that pass (or have no rules) land in ``result.data``.
    """
    errors: dict[str, str] = {}
    cleaned: dict[str, Any] = {}

    for field_name in accept:
        value = data.get(field_name)
        for rule in rules.get(field_name, ()):
            if not rule.check(value):
                errors[field_name] = rule.render()
                break
        else:
            if field_name in data:
                cleaned[field_name] = value

    return ValidationResult(data=cleaned, errors=errors)


def validate_request(
    accept: Iterable[str],
    rules: Mapping[str, tuple[FieldRule, ...]],
    data: Mapping[str, Any],
) -> ValidationResult:
    """Like ``validate()``, but raise ``ValidationError`` with every field error."""
    result = validate(accept, rules, data)
    result.raise_for_errors()
    return result
