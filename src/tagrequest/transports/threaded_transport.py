"""Blocking transport backed by :class:`httpx.Client`.

Each request runs in a worker thread via :func:`asyncio.to_thread`, so the
event loop stays responsive while the blocking client does the I/O. The
abort signal is honoured up to the moment of dispatch; once the request is
on the wire only the timeout can end it early.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

import httpx

from tagrequest.exceptions import AbortError
from tagrequest.models import ResponseEnvelope
from tagrequest.transports.base import build_request, map_transport_errors, to_envelope


class ThreadedHttpxTransport:
    """Transport that dispatches requests from a worker thread.

    Accepts the same arguments as
    :class:`~tagrequest.transports.async_transport.AsyncHttpxTransport`,
    with the synchronous httpx counterparts.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        verify: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=base_url or "",
            verify=verify,
            transport=transport,
            follow_redirects=True,
        )

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
        if abort_signal is not None and abort_signal.is_set():
            raise AbortError()

        request = build_request(
            self._client, path, method, headers, body, timeout, with_credentials
        )
        response = await asyncio.to_thread(self._send_blocking, request)
        return to_envelope(response, encoding)

    async def aclose(self) -> None:
        if self._owns_client:
            self._client.close()

    def _send_blocking(self, request: httpx.Request) -> httpx.Response:
        with map_transport_errors():
            return self._client.send(request)
