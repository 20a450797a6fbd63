"""tagrequest -- an awaitable HTTP request builder with tagged response caching.

Requests are configured with chained setters and sent on first ``await``.
GET responses can be cached by path for a TTL and grouped under tags;
a successful mutating request declaring the same tags invalidates them::

    import tagrequest

    users = await tagrequest.get("/users").cache_tags("users").use_cache()
    await tagrequest.post("/users", {"name": "Ada"}).cache_tags("users")
    users = await tagrequest.get("/users").cache_tags("users").use_cache()  # refetched

The module-level helpers use a default :class:`~tagrequest.client.Client`
built lazily from :func:`~tagrequest.config.resolve_config`; build your own
``Client`` to control the cache, transport and configuration explicitly.

Modules:
    client: Client wiring and the default client.
    request: Request builder and execution pipeline.
    cache: Tagged TTL cache.
    codec: Path normalisation and query-string serialisation.
    events: Per-request lifecycle notifications.
    transports: httpx-backed transports.
    forms: Multipart form builder.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    app: Typer CLI entry point.
"""

from typing import Any

__version__ = "0.1.0"

from tagrequest.cache import LiteralTag, PatternTag, TaggedCache  # noqa: E402
from tagrequest.client import Client, get_client, reset_client, set_client  # noqa: E402
from tagrequest.exceptions import (  # noqa: E402
    AbortError,
    ConfigError,
    InvalidUsageError,
    NetworkError,
    ResponseError,
    TagRequestError,
    TimeoutError_,
)
from tagrequest.forms import FormData, get_form_data_class, set_form_data_class  # noqa: E402
from tagrequest.models import CacheConfig, ClientConfig  # noqa: E402
from tagrequest.request import Request  # noqa: E402

__all__ = [
    "AbortError",
    "CacheConfig",
    "Client",
    "ClientConfig",
    "ConfigError",
    "FormData",
    "InvalidUsageError",
    "LiteralTag",
    "NetworkError",
    "PatternTag",
    "Request",
    "ResponseError",
    "TagRequestError",
    "TaggedCache",
    "TimeoutError_",
    "delete",
    "get",
    "get_client",
    "get_form_data_class",
    "patch",
    "post",
    "put",
    "reset_client",
    "set_client",
    "set_form_data_class",
]


def get(path: str, body: Any = None) -> Request:
    return get_client().get(path, body)


def post(path: str, body: Any = None) -> Request:
    return get_client().post(path, body)


def put(path: str, body: Any = None) -> Request:
    return get_client().put(path, body)


def patch(path: str, body: Any = None) -> Request:
    return get_client().patch(path, body)


def delete(path: str, body: Any = None) -> Request:
    return get_client().delete(path, body)
