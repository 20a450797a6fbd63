"""Tests for the exception hierarchy and response error messages."""

from __future__ import annotations

import pytest

from tagrequest.exceptions import (
    NO_CONNECTION_MESSAGE,
    AbortError,
    ConfigError,
    InvalidUsageError,
    NetworkError,
    ResponseError,
    TagRequestError,
    TimeoutError_,
)
from tagrequest.exit_codes import (
    EXIT_ABORTED,
    EXIT_CLIENT_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NETWORK_ERROR,
    EXIT_SERVER_ERROR,
    EXIT_TIMEOUT,
)
from tagrequest.models import ResponseEnvelope


def _error(status: int, body=None, status_text: str = "") -> ResponseError:
    return ResponseError(ResponseEnvelope(status=status, status_text=status_text, body=body))


class TestHierarchy:
    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (TagRequestError("x"), EXIT_GENERIC_FAILURE),
            (InvalidUsageError("x"), EXIT_INVALID_USAGE),
            (ConfigError("x"), EXIT_GENERIC_FAILURE),
            (NetworkError(), EXIT_NETWORK_ERROR),
            (TimeoutError_(), EXIT_TIMEOUT),
            (AbortError(), EXIT_ABORTED),
        ],
    )
    def test_exit_codes(self, exc: TagRequestError, code: int) -> None:
        assert isinstance(exc, TagRequestError)
        assert exc.exit_code == code

    def test_fixed_messages(self) -> None:
        assert str(NetworkError()) == "Network Error"
        assert str(TimeoutError_()) == "Connection aborted due to timeout"
        assert str(AbortError()) == "Request aborted"

    def test_exit_code_override(self) -> None:
        assert TagRequestError("x", exit_code=42).exit_code == 42

    def test_timeout_error_does_not_shadow_builtin(self) -> None:
        assert not issubclass(TimeoutError_, TimeoutError)


class TestResponseError:
    def test_502_ignores_body(self) -> None:
        err = _error(502, {"message": "from body"}, "Bad Gateway")
        assert err.message == NO_CONNECTION_MESSAGE
        assert err.exit_code == EXIT_SERVER_ERROR

    def test_message_from_mapping(self) -> None:
        assert _error(400, {"message": "Invalid name"}).message == "Invalid name"

    def test_empty_message_falls_back_to_body(self) -> None:
        assert _error(400, {"message": "", "x": 1}).message == '{"message": "", "x": 1}'

    def test_raw_text_body(self) -> None:
        assert _error(500, "oops").message == "oops"

    def test_bytes_body(self) -> None:
        assert _error(500, b"oops").message == "oops"

    def test_list_body(self) -> None:
        assert _error(422, ["a", "b"]).message == '["a", "b"]'

    def test_empty_body(self) -> None:
        assert _error(404, "", "Not Found").message == "Status Code 404 (Not Found)"

    def test_code_from_body(self) -> None:
        assert _error(409, {"code": "CONFLICT"}).code == "CONFLICT"
        assert _error(409, "text").code is None

    def test_attributes(self) -> None:
        err = ResponseError(
            ResponseEnvelope(status=404, status_text="Not Found", headers={"a": "b"}, body={"k": 1})
        )
        assert (err.status, err.status_text, err.headers, err.body) == (
            404,
            "Not Found",
            {"a": "b"},
            {"k": 1},
        )
        assert err.exit_code == EXIT_CLIENT_ERROR
