"""Tests for roost.validation: rules, rule compilation, and validate()."""

import pytest

from roost.errors import ConfigurationError, ValidationError
from roost.validation import (
    DEFAULT_MESSAGE,
    FieldRule,
    build_field_rules,
    email,
    integer,
    matches,
    max_length,
    min_length,
    number,
    one_of,
    render_message,
    required,
    url,
    validate,
    validate_request,
)


class TestBuiltinRules:
    @pytest.mark.parametrize("value", ["x", 0, False, ["a"], {"a": 1}])
    def test_required_passes(self, value: object) -> None:
        assert required(value, {}) is True

    @pytest.mark.parametrize("value", [None, "", "   ", [], {}])
    def test_required_fails(self, value: object) -> None:
        assert required(value, {}) is False

    def test_lengths(self) -> None:
        assert max_length("abcd", {"max": 4}) is True
        assert max_length("abcde", {"max": 4}) is False
        assert min_length("abcd", {"min": 4}) is True
        assert min_length("abc", {"min": 4}) is False

    def test_length_of_missing_value_is_zero(self) -> None:
        assert max_length(None, {"max": 0}) is True
        assert min_length(None, {"min": 1}) is False

    def test_email(self) -> None:
        assert email("user@example.com", {}) is True
        assert email("not-an-email", {}) is False
        assert email(None, {}) is False

    def test_url(self) -> None:
        assert url("https://example.com/x", {}) is True
        assert url("ftp://example.com", {}) is False

    def test_matches(self) -> None:
        assert matches("abc-123", {"pattern": r"^[a-z]+-\d+$"}) is True
        assert matches("ABC", {"pattern": r"^[a-z]+$"}) is False

    def test_one_of(self) -> None:
        assert one_of("red", {"choices": ["red", "blue"]}) is True
        assert one_of("green", {"choices": ["red", "blue"]}) is False

    def test_one_of_unhashable_value_fails(self) -> None:
        assert one_of(["red"], {"choices": {"red", "blue"}}) is False
        assert one_of({"k": 1}, {"choices": {"red": 1}}) is False

    def test_integer(self) -> None:
        assert integer(5, {}) is True
        assert integer("42", {}) is True
        assert integer("4.2", {}) is False
        assert integer(True, {}) is False

    def test_number(self) -> None:
        assert number(4.2, {}) is True
        assert number("4.2", {}) is True
        assert number("four", {}) is False
        assert number(None, {}) is False


class TestRenderMessage:
    def test_substitutes_params(self) -> None:
        assert render_message("at most {{max}} chars", {"max": 40}) == "at most 40 chars"

    def test_unknown_placeholder_left_alone(self) -> None:
        assert render_message("{{min}}", {"max": 1}) == "{{min}}"


class TestBuildFieldRules:
    def test_list_form_keeps_order(self) -> None:
        rules = build_field_rules(
            "name",
            [
                {"rule": "required", "message": "Required"},
                {"rule": "max_length", "params": {"max": 3}},
            ],
        )
        assert [r.name for r in rules] == ["required", "max_length"]
        assert rules[0].message == "Required"
        assert rules[1].message == DEFAULT_MESSAGE
        assert rules[1].params == {"max": 3}

    def test_mapping_form_keeps_order(self) -> None:
        rules = build_field_rules(
            "code",
            {"min_length": {"params": {"min": 2}}, "required": {"message": "x"}},
        )
        assert [r.name for r in rules] == ["min_length", "required"]

    def test_bare_rule_names(self) -> None:
        rules = build_field_rules("name", ["required", "email"])
        assert [r.name for r in rules] == ["required", "email"]

    def test_custom_registry(self) -> None:
        def even(value, params) -> bool:
            return int(value) % 2 == 0

        rules = build_field_rules("n", [{"rule": "even"}], {"even": even})
        assert rules[0].validator is even

    def test_callable_rule(self) -> None:
        def positive(value, params) -> bool:
            return value > 0

        rules = build_field_rules("n", [{"rule": positive}])
        assert rules[0].name == "positive"

    def test_unknown_rule(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown validation rule 'nope'"):
            build_field_rules("name", [{"rule": "nope"}])

    def test_missing_rule_key(self) -> None:
        with pytest.raises(ConfigurationError, match="missing 'rule'"):
            build_field_rules("name", [{"message": "x"}])

    def test_params_must_be_mapping(self) -> None:
        with pytest.raises(ConfigurationError):
            build_field_rules("name", [{"rule": "max_length", "params": [1]}])

    def test_bad_shape(self) -> None:
        with pytest.raises(ConfigurationError):
            build_field_rules("name", "required")


def _rules() -> dict[str, tuple[FieldRule, ...]]:
    return {
        "name": (
            FieldRule("required", required, message="Name is required"),
            FieldRule("max_length", max_length, {"max": 5}, "At most {{max}}"),
        ),
        "email": (FieldRule("email", email, message="Bad email"),),
    }


class TestValidate:
    def test_valid(self) -> None:
        result = validate(("name", "email"), _rules(), {"name": "Ada", "email": "a@b.io"})
        assert result.is_valid
        assert result.data == {"name": "Ada", "email": "a@b.io"}

    def test_first_failure_per_field_wins(self) -> None:
        result = validate(("name",), _rules(), {"name": ""})
        assert result.errors == {"name": "Name is required"}

    def test_later_rules_skipped_after_failure(self) -> None:
        calls = []

        def spy(value, params) -> bool:
            calls.append(value)
            return True

        rules = {
            "n": (
                FieldRule("never", lambda value, params: False, message="m"),
                FieldRule("spy", spy, message="unused"),
            ),
        }
        result = validate(("n",), rules, {"n": "x"})
        assert result.errors == {"n": "m"}
        assert calls == []

    def test_later_rule_message_rendered(self) -> None:
        result = validate(("name",), _rules(), {"name": "Ada Lovelace"})
        assert result.errors == {"name": "At most 5"}

    def test_all_fields_reported(self) -> None:
        result = validate(("name", "email"), _rules(), {"email": "nope"})
        assert result.errors == {"name": "Name is required", "email": "Bad email"}
        assert not result

    def test_only_accepted_fields_checked(self) -> None:
        result = validate(("email",), _rules(), {"email": "a@b.io"})
        assert result.is_valid

    def test_validator_receives_params(self) -> None:
        seen = []

        def spy(value, params) -> bool:
            seen.append((value, dict(params)))
            return True

        validate(("n",), {"n": (FieldRule("spy", spy, {"k": 1}),)}, {"n": 7})
        assert seen == [(7, {"k": 1})]


class TestValidateRequest:
    def test_raises_with_all_errors(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_request(("name", "email"), _rules(), {"name": "", "email": "x"})
        assert exc_info.value.errors == {"name": "Name is required", "email": "Bad email"}

    def test_returns_result_when_valid(self) -> None:
        result = validate_request(("name",), _rules(), {"name": "Ada"})
        assert result.data == {"name": "Ada"}
