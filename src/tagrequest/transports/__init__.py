"""Wire transports for tagrequest.

Two interchangeable implementations of the
:class:`~tagrequest.transports.base.Transport` protocol, both wrapping
:mod:`httpx`:

:class:`AsyncHttpxTransport` -- non-blocking, backed by :class:`httpx.AsyncClient`.
:class:`ThreadedHttpxTransport` -- blocking :class:`httpx.Client` run in a worker thread.

The implementation is chosen once, from
:attr:`~tagrequest.models.ClientConfig.transport`, by :func:`create_transport`.
"""

from __future__ import annotations

from typing import Any

from tagrequest.exceptions import ConfigError
from tagrequest.models import ClientConfig
from tagrequest.transports.async_transport import AsyncHttpxTransport
from tagrequest.transports.base import Transport
from tagrequest.transports.threaded_transport import ThreadedHttpxTransport

__all__ = ["AsyncHttpxTransport", "ThreadedHttpxTransport", "Transport", "create_transport"]


def create_transport(config: ClientConfig, **kwargs: Any) -> Transport:
    """Build the transport selected by ``config.transport``.

    Args:
        config: Client configuration (``transport``, ``base_url``, ``verify_ssl``).
        **kwargs: Forwarded to the transport constructor (e.g. ``transport=``
            to inject an :class:`httpx.MockTransport`).
    """
    options: dict[str, Any] = {"base_url": config.base_url, "verify": config.verify_ssl}
    options.update(kwargs)
    if config.transport == "async":
        return AsyncHttpxTransport(**options)
    if config.transport == "threaded":
        return ThreadedHttpxTransport(**options)
    raise ConfigError(f"Unknown transport: {config.transport}")
