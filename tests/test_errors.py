"""Tests for roost.errors: exception hierarchy and outcome bodies."""

import pytest

from roost.errors import (
    AccessDenied,
    AuthenticationError,
    ConfigurationError,
    EmptyMessageError,
    ForkError,
    MalformedMessageError,
    MethodNotAllowed,
    NotFound,
    ReceiveTimeoutError,
    RoostError,
    RoutingError,
    ServiceError,
    TransportError,
    UnknownServiceError,
    ValidationError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "exc_type",
        [
            ConfigurationError,
            ServiceError,
            TransportError,
            AuthenticationError,
            AccessDenied,
            ValidationError,
            RoutingError,
        ],
    )
    def test_rooted_at_roost_error(self, exc_type: type) -> None:
        assert issubclass(exc_type, RoostError)

    def test_service_errors(self) -> None:
        assert issubclass(UnknownServiceError, ServiceError)
        assert issubclass(ForkError, ServiceError)

    def test_transport_errors(self) -> None:
        assert issubclass(EmptyMessageError, TransportError)
        assert issubclass(MalformedMessageError, TransportError)
        assert issubclass(ReceiveTimeoutError, TransportError)

    def test_receive_timeout_is_builtin_timeout(self) -> None:
        with pytest.raises(TimeoutError):
            raise ReceiveTimeoutError("slow peer")

    def test_routing_outcomes(self) -> None:
        assert issubclass(NotFound, RoutingError)
        assert issubclass(MethodNotAllowed, RoutingError)


class TestNotFound:
    def test_response(self) -> None:
        assert NotFound().as_response() == {"code": 404, "message": "Not found!"}

    def test_detail_stays_off_the_wire(self) -> None:
        err = NotFound("No route matches GET '/secret'")
        assert "secret" in str(err)
        assert err.as_response() == {"code": 404, "message": "Not found!"}

    def test_frozen(self) -> None:
        err = NotFound()
        with pytest.raises(AttributeError):
            err.code = 500  # type: ignore[misc]


class TestMethodNotAllowed:
    def test_response_lists_methods_in_order(self) -> None:
        err = MethodNotAllowed(("POST", "GET"))
        assert err.as_response() == {
            "code": 405,
            "message": "Method not allowed",
            "detail": "Allowed methods: POST, GET",
        }

    def test_str(self) -> None:
        assert str(MethodNotAllowed(["GET"])) == "405: Method not allowed (Allowed methods: GET)"


class TestValidationError:
    def test_response(self) -> None:
        err = ValidationError({"name": "Name is required"})
        assert err.as_response() == {
            "code": 422,
            "message": "Validation failed",
            "errors": {"name": "Name is required"},
        }

    def test_message_names_fields(self) -> None:
        err = ValidationError({"name": "x", "email": "y"})
        assert "name" in str(err)
        assert "email" in str(err)

    def test_errors_are_copied(self) -> None:
        source = {"name": "x"}
        err = ValidationError(source)
        source["other"] = "y"
        assert err.errors == {"name": "x"}
