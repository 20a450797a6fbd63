"""Client wiring: configuration, the shared cache and the transport.

A :class:`Client` owns one :class:`~tagrequest.cache.TaggedCache` and one
transport for its whole lifetime; every :class:`~tagrequest.request.Request`
it builds borrows both. Use it as an async context manager (or call
:meth:`Client.aclose`) to stop the cache sweep and release connections.

The module also keeps a lazily created default client backing the
module-level helpers :func:`tagrequest.get`, :func:`tagrequest.post`, etc.
"""

from __future__ import annotations

from typing import Any, Optional

from tagrequest.cache import TaggedCache
from tagrequest.config import resolve_config
from tagrequest.forms import FormData, get_form_data_class
from tagrequest.models import ClientConfig, HTTPMethod
from tagrequest.output import OutputManager, get_output
from tagrequest.request import Request
from tagrequest.transports import Transport, create_transport


class Client:
    """Factory of :class:`~tagrequest.request.Request` objects sharing one cache.

    Args:
        config: Client configuration. Defaults to :func:`~tagrequest.config.resolve_config`.
        cache: Cache to share; built from ``config.cache`` when omitted.
        transport: Transport to send through; built by
            :func:`~tagrequest.transports.create_transport` when omitted.
        output: Output manager for the verbose request log. When omitted,
            a verbose config gets its own verbose manager and any other
            config uses the global one.
        form_data_class: Class :meth:`Request.form` builds forms with;
            defaults to the process-wide class from
            :func:`~tagrequest.forms.set_form_data_class`.

    Example::

        async with Client(ClientConfig(base_url="https://api.example.com")) as client:
            user = await client.get("/users/1").use_cache()
            await client.put("/users/1", {"name": "Ada"}).cache_tags("users")
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        cache: Optional[TaggedCache] = None,
        transport: Optional[Transport] = None,
        output: Optional[OutputManager] = None,
        form_data_class: Optional[type[FormData]] = None,
    ) -> None:
        self.config = config if config is not None else resolve_config()
        self.cache = cache if cache is not None else TaggedCache(self.config.cache.flush_interval_ms)
        self.transport = transport if transport is not None else create_transport(self.config)
        self._output = output
        self._form_data_class = form_data_class

    @property
    def output(self) -> OutputManager:
        if self._output is None:
            if self.config.verbose:
                self._output = OutputManager(verbose=True)
            else:
                return get_output()
        return self._output

    @property
    def form_data_class(self) -> type[FormData]:
        return self._form_data_class or get_form_data_class()

    # ------------------------------------------------------------------ #
    # Request factories
    # ------------------------------------------------------------------ #

    def request(self, method: str, path: str, body: Any = None) -> Request:
        """Build an unsent request; await it (or call ``send()``) to execute."""
        return Request(self, method, path, body)

    def get(self, path: str, body: Any = None) -> Request:
        return self.request(HTTPMethod.GET.value, path, body)

    def post(self, path: str, body: Any = None) -> Request:
        return self.request(HTTPMethod.POST.value, path, body)

    def put(self, path: str, body: Any = None) -> Request:
        return self.request(HTTPMethod.PUT.value, path, body)

    def patch(self, path: str, body: Any = None) -> Request:
        return self.request(HTTPMethod.PATCH.value, path, body)

    def delete(self, path: str, body: Any = None) -> Request:
        return self.request(HTTPMethod.DELETE.value, path, body)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def reset_cache(self) -> None:
        """Drop every cached response."""
        self.cache.delete_all()

    async def aclose(self) -> None:
        """Stop the cache sweep and close the transport."""
        self.cache.close()
        await self.transport.aclose()

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


# ------------------------------------------------------------------ #
# Default client
# ------------------------------------------------------------------ #

_client: Optional[Client] = None


def get_client() -> Client:
    """Return the default :class:`Client`, creating one from resolved config lazily."""
    global _client
    if _client is None:
        _client = Client()
    return _client


def set_client(client: Client) -> None:
    """Install *client* as the default used by the module-level helpers."""
    global _client
    _client = client


def reset_client() -> None:
    """Forget the default client (it is not closed)."""
    global _client
    _client = None
