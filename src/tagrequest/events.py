"""Per-request lifecycle notifications.

Every :class:`~tagrequest.request.Request` owns one :class:`EventChannel`
with four fixed channels:

* ``request`` -- ``(request,)``, fired before the cache probe and dispatch.
* ``response`` -- ``(value,)``, fired once the request resolved.
* ``error`` -- ``(exc,)``, fired once the request failed.
* ``done`` -- ``(None, value)`` or ``(exc,)``, fired exactly once after
  ``response`` / ``error``.

Listeners run synchronously, in subscription order.
"""

from __future__ import annotations

import enum
from typing import Any, Callable, Optional, Union

from tagrequest.exceptions import InvalidUsageError

Listener = Callable[..., Any]


class RequestEvent(str, enum.Enum):
    """The channels a request announces its lifecycle on."""

    REQUEST = "request"
    RESPONSE = "response"
    ERROR = "error"
    DONE = "done"


EventName = Union[RequestEvent, str]


class EventChannel:
    """A minimal observer registry keyed by :class:`RequestEvent`."""

    def __init__(self) -> None:
        self._listeners: dict[RequestEvent, list[Listener]] = {}

    def on(self, event: EventName, listener: Listener) -> None:
        """Subscribe *listener* to *event*."""
        self._listeners.setdefault(_coerce(event), []).append(listener)

    def off(self, event: Optional[EventName] = None, listener: Optional[Listener] = None) -> None:
        """Unsubscribe listeners.

        * ``off()`` removes every listener of every event.
        * ``off(event)`` removes every listener of *event*.
        * ``off(event, listener)`` removes that one listener.
        """
        if event is None:
            self._listeners.clear()
            return

        key = _coerce(event)
        if key not in self._listeners:
            return
        if listener is None:
            del self._listeners[key]
        else:
            self._listeners[key] = [cb for cb in self._listeners[key] if cb is not listener]

    def emit(self, event: EventName, *args: Any) -> None:
        """Call every listener of *event* with *args*."""
        for listener in list(self._listeners.get(_coerce(event), ())):
            listener(*args)

    def listeners(self, event: EventName) -> list[Listener]:
        return list(self._listeners.get(_coerce(event), ()))


def _coerce(event: EventName) -> RequestEvent:
    try:
        return RequestEvent(event)
    except ValueError:
        choices = ", ".join(e.value for e in RequestEvent)
        raise InvalidUsageError(f"Unknown event '{event}' (expected one of: {choices})") from None
