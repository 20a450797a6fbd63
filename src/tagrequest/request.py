"""Request builder and its single-shot execution pipeline.

A :class:`Request` is configured through chained setters and executed at
most once. The first ``await request``, :meth:`Request.execute` or
:meth:`Request.send` freezes the builder into a :class:`RequestDescriptor`
and starts an :class:`Execution` as an :class:`asyncio.Task`; every later
call (and every concurrent awaiter) shares that same task, so a request
instance never hits the transport twice. A request that is never awaited
never touches the transport.

The pipeline, in order:

1. emit ``request``
2. build the effective path (normalised path + serialised query)
3. answer from the cache when caching is enabled and the path is stored
4. infer ``Content-Type: application/json`` for structured bodies
5. serialise JSON bodies
6. log the request when the client is verbose
7. send through the client's transport
8. JSON-decode textual bodies (failures keep the raw text)
9. raise :class:`~tagrequest.exceptions.ResponseError` outside 200-299
10. unwrap the body unless disabled
11. store the value in the cache
12. invalidate by tags for mutating methods
13. emit ``response`` + ``done``, or ``error`` + ``done`` on failure
"""

from __future__ import annotations

import asyncio
import enum
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generator, Optional, Union
from urllib.parse import unquote

from tagrequest.cache.tags import Tag, TagLike, as_tags
from tagrequest.codec import ensure_encoding, stringify
from tagrequest.events import EventChannel, EventName, Listener, RequestEvent
from tagrequest.exceptions import InvalidUsageError, ResponseError
from tagrequest.forms import FormData, FormField
from tagrequest.models import HTTPMethod, ResponseEnvelope

if TYPE_CHECKING:
    from tagrequest.client import Client

JSON_CONTENT_TYPE = "application/json"

_MISSING = object()


class RequestState(str, enum.Enum):
    """Lifecycle of a :class:`Request`. ``done`` fires on the settle transition."""

    PENDING = "pending"
    SENT = "sent"
    SETTLED_OK = "settled_ok"
    SETTLED_ERR = "settled_err"


@dataclass(frozen=True)
class RequestDescriptor:
    """Immutable snapshot of a request, taken when it is sent.

    Attributes:
        method: Upper-case HTTP method.
        path: Normalised path or absolute URL, without the query map.
        body: Request body as given (serialised later by the pipeline).
        headers: Header map; keys keep the caller's casing.
        query: Query parameters appended to ``path``.
        tags: Declared cache tags, or ``None`` when none were declared.
        cache_ttl: Milliseconds to cache the result; ``0`` disables caching.
        unwrap: Resolve with the body instead of the whole envelope.
        encoding: Response text encoding; ``None`` keeps raw bytes.
        timeout: Milliseconds before the request fails; ``0`` means none.
        with_credentials: Explicit cookie policy; ``None`` defers to the client.
        abort_signal: Event that aborts the request once set.
    """

    method: str
    path: str
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, Any] = field(default_factory=dict)
    tags: Optional[tuple[Tag, ...]] = None
    cache_ttl: int = 0
    unwrap: bool = True
    encoding: Optional[str] = "utf-8"
    timeout: int = 0
    with_credentials: Optional[bool] = None
    abort_signal: Optional[asyncio.Event] = None

    @property
    def effective_path(self) -> str:
        """The wire target and cache key: path plus serialised query, if any."""
        query_string = stringify(self.query)
        if query_string:
            return f"{self.path}?{query_string}"
        return self.path


class Execution:
    """Runs the pipeline for one :class:`RequestDescriptor`.

    Args:
        descriptor: The frozen request.
        client: Supplies the cache, transport, configuration and output.
        events: The owning request's event channel.
        source: Payload of the ``request`` event (the owning request).
    """

    def __init__(
        self,
        descriptor: RequestDescriptor,
        client: Client,
        events: EventChannel,
        source: Any = None,
    ) -> None:
        self.descriptor = descriptor
        self.state = RequestState.SENT
        self._client = client
        self._events = events
        self._source = source

    async def run(self) -> Any:
        d = self.descriptor
        cache = self._client.cache
        try:
            self._events.emit(RequestEvent.REQUEST, self._source)
            path = d.effective_path

            value = cache.get(path, _MISSING) if d.cache_ttl > 0 else _MISSING
            if value is _MISSING:
                value = await self._dispatch(path)
        except (asyncio.CancelledError, Exception) as exc:
            self._settle(RequestState.SETTLED_ERR, exc)
            raise

        self._settle(RequestState.SETTLED_OK, value)
        return value

    async def _dispatch(self, path: str) -> Any:
        d = self.descriptor
        config = self._client.config
        cache = self._client.cache

        headers = dict(d.headers)
        body = d.body
        if "Content-Type" not in headers and _is_structured(body):
            headers["Content-Type"] = JSON_CONTENT_TYPE
        if (
            body is not None
            and headers.get("Content-Type") == JSON_CONTENT_TYPE
            and not isinstance(body, (str, bytes))
        ):
            body = json.dumps(body)

        if config.verbose:
            self._log(path, headers, body)

        with_credentials = d.with_credentials
        if with_credentials is None:
            with_credentials = config.with_credentials

        envelope = await self._client.transport.send(
            path,
            d.method,
            headers,
            body,
            d.encoding,
            d.timeout,
            with_credentials,
            d.abort_signal,
        )
        envelope = _parse_body(envelope)
        if not envelope.ok:
            raise ResponseError(envelope)

        value: Any = envelope.body if d.unwrap else envelope

        if d.cache_ttl > 0:
            cache.set(path, value, d.tags, d.cache_ttl)
        if d.tags is not None and d.method != HTTPMethod.GET.value:
            cache.delete_by_tags(d.tags)
        return value

    def _log(self, path: str, headers: Mapping[str, str], body: Any) -> None:
        shown = f"<form: {len(body)} fields>" if isinstance(body, FormData) else body
        self._client.output.request_log(self.descriptor.method, unquote(path), shown, headers)

    def _settle(self, state: RequestState, outcome: Any) -> None:
        self.state = state
        if state == RequestState.SETTLED_OK:
            self._notify(RequestEvent.RESPONSE, outcome)
            self._notify(RequestEvent.DONE, None, outcome)
        else:
            self._notify(RequestEvent.ERROR, outcome)
            self._notify(RequestEvent.DONE, outcome)

    def _notify(self, event: RequestEvent, *args: Any) -> None:
        """Emit a settle-time event. The outcome is already fixed, so a failing
        listener is reported on stderr and the remaining listeners still run."""
        for listener in self._events.listeners(event):
            try:
                listener(*args)
            except Exception as exc:
                self._client.output.error(
                    f"{event.value} listener failed for "
                    f"{self.descriptor.method} {self.descriptor.path}: {exc}"
                )


class Request:
    """Fluent, awaitable HTTP request.

    Built by :class:`~tagrequest.client.Client` (``client.get(...)`` etc.);
    setters return the request itself so they can be chained, and awaiting
    the request sends it.

    Example::

        users = await (
            client.get("/users")
            .query({"page": 2})
            .cache_tags("users")
            .use_cache()
        )

    Raises:
        InvalidUsageError: On an unknown method, or when a setter is called
            after the request was sent.
    """

    def __init__(self, client: Client, method: str, path: str, body: Any = None) -> None:
        try:
            self._method = HTTPMethod(method.upper()).value
        except ValueError:
            choices = ", ".join(m.value for m in HTTPMethod)
            raise InvalidUsageError(
                f"Unsupported HTTP method '{method}' (expected one of: {choices})"
            ) from None

        self._client = client
        self._path = ensure_encoding(path)
        self._body = body
        self._headers: dict[str, str] = {}
        self._query: dict[str, Any] = {}
        self._tags: Optional[tuple[Tag, ...]] = None
        self._cache_ttl = 0
        self._unwrap = True
        self._encoding: Optional[str] = "utf-8"
        self._timeout = 0
        self._with_credentials: Optional[bool] = None
        self._abort_signal: Optional[asyncio.Event] = None

        self._events = EventChannel()
        self._execution: Optional[Execution] = None
        self._task: Optional[asyncio.Task[Any]] = None

    def __repr__(self) -> str:
        return f"<Request {self._method} {self._path} [{self.state.value}]>"

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def method(self) -> str:
        return self._method

    @property
    def path(self) -> str:
        """The normalised path, without the query map."""
        return self._path

    @property
    def state(self) -> RequestState:
        if self._execution is None:
            return RequestState.PENDING
        return self._execution.state

    @property
    def descriptor(self) -> RequestDescriptor:
        """The frozen descriptor once sent, otherwise a snapshot of the current settings."""
        if self._execution is not None:
            return self._execution.descriptor
        return self._snapshot()

    # ------------------------------------------------------------------ #
    # Builder
    # ------------------------------------------------------------------ #

    def set(self, key: Union[str, Mapping[str, Any]], value: Any = None) -> Request:
        """Set one header, or merge a mapping of headers.

        ``None`` values are skipped in both forms.
        """
        self._check_pending()
        items = key.items() if isinstance(key, Mapping) else [(key, value)]
        for name, header_value in items:
            if header_value is not None:
                self._headers[name] = header_value
        return self

    def type(self, content_type: str) -> Request:
        """Shortcut for ``set("Content-Type", content_type)``."""
        return self.set("Content-Type", content_type)

    def cache_tags(self, *tags: TagLike) -> Request:
        """Declare the cache tags of this request, replacing earlier ones.

        Strings are literal tags, compiled patterns match by ``re.search``.
        GET requests store their cached value under these tags; other
        methods invalidate every entry they match once they succeed.
        """
        self._check_pending()
        self._tags = as_tags(tags)
        return self

    def query(self, params: Mapping[str, Any]) -> Request:
        self._check_pending()
        self._query.update(params)
        return self

    def form(self, form: Union[FormData, Mapping[str, Any]]) -> Request:
        """Use a multipart body.

        A :class:`~tagrequest.forms.FormData` is used as-is. A mapping is
        converted with the client's form class: each value is cast to a list
        and every item appended under the key. An item that is a mapping
        with exactly ``value`` and ``options`` keys is appended as
        ``append(key, value, **options)``, where a string option is the
        filename. ``None`` items are skipped.
        """
        self._check_pending()
        if isinstance(form, FormData):
            self._body = form
            return self

        data = self._client.form_data_class()
        for key, raw in form.items():
            if not key:
                continue
            items = raw if isinstance(raw, (list, tuple)) else [raw]
            for item in items:
                if item is None:
                    continue
                if isinstance(item, FormField):
                    data.append(key, item.value, item.filename, item.content_type)
                elif isinstance(item, Mapping) and set(item) == {"value", "options"}:
                    data.append(key, item["value"], **_form_options(item["options"]))
                else:
                    data.append(key, item)
        self._body = data
        return self

    def use_cache(self, ttl: Optional[int] = None) -> Request:
        """Cache the resolved value for *ttl* milliseconds (client default when omitted)."""
        self._check_pending()
        if ttl is None:
            ttl = self._client.config.cache.default_ttl_ms
        self._cache_ttl = ttl
        return self

    def reset_cache(self, reset: bool = True) -> Request:
        """Invalidate this request's tags right away, without sending it."""
        if reset and self._tags is not None:
            self._client.cache.delete_by_tags(self._tags)
        return self

    def unwrap_body(self, unwrap: bool = True) -> Request:
        self._check_pending()
        self._unwrap = unwrap
        return self

    def set_encoding(self, encoding: Optional[str]) -> Request:
        """Decode the response body with *encoding*; ``None`` keeps raw bytes."""
        self._check_pending()
        self._encoding = encoding
        return self

    def set_with_credentials(self, with_credentials: bool = True) -> Request:
        self._check_pending()
        self._with_credentials = with_credentials
        return self

    def set_timeout(self, timeout: int) -> Request:
        """Fail with :class:`~tagrequest.exceptions.TimeoutError_` after *timeout* ms."""
        self._check_pending()
        self._timeout = timeout
        return self

    def set_abort_signal(self, signal: Optional[asyncio.Event]) -> Request:
        """Abort the request with :class:`~tagrequest.exceptions.AbortError` once *signal* is set."""
        self._check_pending()
        self._abort_signal = signal
        return self

    def on(self, event: EventName, listener: Listener) -> Request:
        self._events.on(event, listener)
        return self

    def off(self, event: Optional[EventName] = None, listener: Optional[Listener] = None) -> Request:
        self._events.off(event, listener)
        return self

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    def execute(self) -> asyncio.Task[Any]:
        """Start the request and return its task; later calls return the same task.

        Must be called with an event loop running.
        """
        if self._task is None:
            self._execution = Execution(self._snapshot(), self._client, self._events, self)
            self._task = asyncio.ensure_future(self._execution.run())
        return self._task

    def send(self, body: Any = None) -> asyncio.Task[Any]:
        """Set *body* (when given and the request is unsent), then :meth:`execute`."""
        if body is not None and self._task is None:
            self._body = body
        return self.execute()

    def __await__(self) -> Generator[Any, None, Any]:
        # Shielded so cancelling one awaiter leaves the shared task running.
        return asyncio.shield(self.execute()).__await__()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _check_pending(self) -> None:
        if self._execution is not None:
            raise InvalidUsageError(f"{self._method} {self._path} was already sent")

    def _snapshot(self) -> RequestDescriptor:
        return RequestDescriptor(
            method=self._method,
            path=self._path,
            body=self._body,
            headers=dict(self._headers),
            query=dict(self._query),
            tags=self._tags,
            cache_ttl=self._cache_ttl,
            unwrap=self._unwrap,
            encoding=self._encoding,
            timeout=self._timeout,
            with_credentials=self._with_credentials,
            abort_signal=self._abort_signal,
        )


def _is_structured(body: Any) -> bool:
    return isinstance(body, (Mapping, list, tuple)) and not isinstance(body, FormData)


def _parse_body(envelope: ResponseEnvelope) -> ResponseEnvelope:
    """Return *envelope* with a JSON-decoded body when the text parses."""
    if not isinstance(envelope.body, str):
        return envelope
    try:
        parsed = json.loads(envelope.body)
    except ValueError:
        return envelope
    return envelope.model_copy(update={"body": parsed})


def _form_options(options: Any) -> dict[str, Any]:
    """Keyword arguments for ``FormData.append``; a bare string is the filename."""
    if options is None:
        return {}
    if isinstance(options, str):
        return {"filename": options}
    if not isinstance(options, Mapping):
        raise InvalidUsageError(
            f"Form field options must be a filename or a mapping, not {type(options).__name__}"
        )
    unknown = sorted(str(key) for key in options if key not in ("filename", "content_type"))
    if unknown:
        raise InvalidUsageError(
            f"Unknown form field option(s): {', '.join(unknown)} "
            "(expected filename, content_type)"
        )
    return dict(options)
