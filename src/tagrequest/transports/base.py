"""Transport contract and the helpers shared by the httpx implementations.

A transport sends one fully described request and returns a buffered
:class:`~tagrequest.models.ResponseEnvelope`. It never interprets the status
code: non-2xx responses resolve normally and are turned into
:class:`~tagrequest.exceptions.ResponseError` by the request pipeline.

Failures a transport must surface:

* connectivity failure -> :class:`~tagrequest.exceptions.NetworkError`
* elapsed timeout -> :class:`~tagrequest.exceptions.TimeoutError_`
* fired abort signal -> :class:`~tagrequest.exceptions.AbortError`
"""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional, Protocol, runtime_checkable

import httpx

from tagrequest.exceptions import NetworkError, TimeoutError_
from tagrequest.forms import FormData
from tagrequest.models import ResponseEnvelope


@runtime_checkable
class Transport(Protocol):
    """What the request pipeline needs from a wire client."""

    async def send(
        self,
        path: str,
        method: str,
        headers: Mapping[str, Any],
        body: Any,
        encoding: Optional[str],
        timeout: int,
        with_credentials: Optional[bool],
        abort_signal: Optional[asyncio.Event],
    ) -> ResponseEnvelope:
        """Send the request and return the buffered response.

        Args:
            path: Absolute URL, or a path relative to the transport's base URL.
            method: Upper-case HTTP method.
            headers: Request headers; values are sent as strings.
            body: ``str``, ``bytes``, :class:`~tagrequest.forms.FormData` or ``None``.
            encoding: Text encoding of the response body; ``None`` keeps bytes.
            timeout: Timeout in milliseconds; ``0`` disables it.
            with_credentials: ``False`` strips cookies from the request.
            abort_signal: Event that cancels the request once set.
        """
        ...

    async def aclose(self) -> None:
        """Release pooled connections."""
        ...


def build_request(
    client: httpx.Client | httpx.AsyncClient,
    path: str,
    method: str,
    headers: Mapping[str, Any],
    body: Any,
    timeout: int,
    with_credentials: Optional[bool],
) -> httpx.Request:
    """Translate the transport arguments into an :class:`httpx.Request`."""
    kwargs: dict[str, Any] = {
        "method": method,
        "url": path,
        "headers": {key: str(value) for key, value in headers.items()},
        "timeout": timeout / 1000 if timeout else None,
    }
    if isinstance(body, FormData):
        files = body.to_httpx_files()
        if files:
            kwargs["files"] = files
    elif isinstance(body, (str, bytes)):
        kwargs["content"] = body
    elif body is not None:
        kwargs["content"] = str(body)

    request = client.build_request(**kwargs)
    if with_credentials is False:
        request.headers.pop("Cookie", None)
    return request


def to_envelope(response: httpx.Response, encoding: Optional[str]) -> ResponseEnvelope:
    """Buffer *response* into an envelope, decoding the body unless *encoding* is ``None``."""
    content = response.content
    body: Any = content if encoding is None else content.decode(encoding, errors="replace")
    return ResponseEnvelope(
        status=response.status_code,
        status_text=response.reason_phrase or "",
        headers=dict(response.headers),
        body=body,
    )


@contextmanager
def map_transport_errors() -> Iterator[None]:
    """Re-raise httpx failures as tagrequest exceptions."""
    try:
        yield
    except httpx.TimeoutException as exc:
        raise TimeoutError_() from exc
    except httpx.TransportError as exc:
        raise NetworkError() from exc
