"""Exception hierarchy for tagrequest.

All exceptions inherit from :class:`TagRequestError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`tagrequest.exit_codes`.
The CLI entry point in :func:`tagrequest.app.main` catches
``TagRequestError`` and exits with the appropriate code.

Subclass hierarchy::

    TagRequestError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- ConfigError         (exit 1)
    +-- NetworkError        (exit 6)
    +-- TimeoutError_       (exit 7)
    +-- AbortError          (exit 8)
    +-- ResponseError       (exit 4 for 4xx, 5 otherwise)

Transport failures (:class:`NetworkError`, :class:`TimeoutError_`,
:class:`AbortError`) carry fixed messages. :class:`ResponseError` is only
raised after a complete round-trip and derives its message from the
response body.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Optional

from tagrequest.exit_codes import (
    EXIT_ABORTED,
    EXIT_CLIENT_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NETWORK_ERROR,
    EXIT_SERVER_ERROR,
    EXIT_TIMEOUT,
)

if TYPE_CHECKING:
    from tagrequest.models import ResponseEnvelope

NO_CONNECTION_MESSAGE = "No connection with server"


class TagRequestError(Exception):
    """Base exception for all tagrequest errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`tagrequest.exit_codes`.

    Args:
        message: Human-readable error description. Subclasses with a
            ``default_message`` may omit it.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    default_message: str = ""

    def __init__(self, message: Optional[str] = None, exit_code: int | None = None):
        self.message = message if message is not None else self.default_message
        super().__init__(self.message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(TagRequestError):
    """Raised for invalid arguments or when a sent request is mutated."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(TagRequestError):
    """Raised for configuration problems (invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE


class NetworkError(TagRequestError):
    """Raised when the transport fails before any status is known."""

    exit_code = EXIT_NETWORK_ERROR
    default_message = "Network Error"


class TimeoutError_(TagRequestError):
    """Raised when the request timeout elapses.

    Named with a trailing underscore to avoid shadowing the built-in
    ``TimeoutError``.
    """

    exit_code = EXIT_TIMEOUT
    default_message = "Connection aborted due to timeout"


class AbortError(TagRequestError):
    """Raised when the request's abort signal fires before a response arrives."""

    exit_code = EXIT_ABORTED
    default_message = "Request aborted"


class ResponseError(TagRequestError):
    """Raised when the server answers with a status outside 200-299.

    Args:
        response: The parsed response envelope.

    Attributes:
        status: HTTP status code.
        status_text: Reason phrase reported by the server.
        headers: Response headers.
        body: Parsed response body (JSON-decoded when possible).
        code: ``body["code"]`` when the body is a mapping carrying one.
    """

    def __init__(self, response: ResponseEnvelope) -> None:
        self.status = response.status
        self.status_text = response.status_text
        self.headers = response.headers
        self.body = response.body
        self.code = _error_code(response.body)
        exit_code = EXIT_CLIENT_ERROR if 400 <= response.status < 500 else EXIT_SERVER_ERROR
        super().__init__(_error_message(response), exit_code=exit_code)


def _error_message(response: ResponseEnvelope) -> str:
    """Derive the human-readable message for a failed response."""
    if response.status == 502:
        return NO_CONNECTION_MESSAGE

    body: Any = response.body
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    if body:
        if isinstance(body, str):
            return body
        if isinstance(body, (bytes, bytearray)):
            return bytes(body).decode("utf-8", errors="replace")
        return json.dumps(body, ensure_ascii=False, default=str)
    return f"Status Code {response.status} ({response.status_text})"


def _error_code(body: Any) -> Any:
    if isinstance(body, dict):
        return body.get("code")
    return None
