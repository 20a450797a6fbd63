"""Non-blocking transport backed by :class:`httpx.AsyncClient`.

The request is raced against the optional abort signal; whichever finishes
first wins, and a fired signal cancels the in-flight request.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

import httpx

from tagrequest.exceptions import AbortError
from tagrequest.models import ResponseEnvelope
from tagrequest.transports.base import build_request, map_transport_errors, to_envelope


class AsyncHttpxTransport:
    """Transport that dispatches requests on the running event loop.

    Args:
        base_url: Prefix for relative request paths.
        verify: Verify TLS certificates.
        transport: Optional low-level httpx transport, e.g.
            :class:`httpx.MockTransport` in tests.
        client: A pre-built :class:`httpx.AsyncClient`; when given, the
            other arguments are ignored and the caller keeps ownership.

    Example::

        transport = AsyncHttpxTransport(base_url="https://api.example.com")
        envelope = await transport.send("/users", "GET", {}, None, "utf-8", 0, None, None)
        await transport.aclose()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        verify: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
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
        with map_transport_errors():
            if abort_signal is None:
                response = await self._client.send(request)
            else:
                response = await self._send_abortable(request, abort_signal)
        return to_envelope(response, encoding)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _send_abortable(
        self, request: httpx.Request, abort_signal: asyncio.Event
    ) -> httpx.Response:
        send_task = asyncio.ensure_future(self._client.send(request))
        abort_task = asyncio.ensure_future(abort_signal.wait())
        try:
            await asyncio.wait({send_task, abort_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            abort_task.cancel()
            if not send_task.done():
                send_task.cancel()
                # Let the cancellation land before inspecting the task.
                await asyncio.wait({send_task})

        if send_task.cancelled():
            raise AbortError()
        return send_task.result()
